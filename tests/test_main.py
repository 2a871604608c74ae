import logging
import os
import sys
import tempfile
import unittest
from unittest import mock

# Allow direct imports from the project root
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)

import config
import main
from agent import Action, QLearningAgent
from pong import PongGame


class TestBootstrap(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.table1 = os.path.join(self.tmp_dir.name, "agent1_q_table.json")
        self.table2 = os.path.join(self.tmp_dir.name, "agent2_q_table.json")

    def tearDown(self):
        self.tmp_dir.cleanup()
        logging.getLogger().handlers.clear()

    def test_headless_run_saves_both_tables(self):
        exit_code = main.main(
            [
                "headless",
                "--ticks",
                "200",
                "--table1",
                self.table1,
                "--table2",
                self.table2,
            ]
        )
        self.assertEqual(exit_code, 0)
        for path in (self.table1, self.table2):
            agent = QLearningAgent(1)
            self.assertTrue(agent.load_q_table(path))
            self.assertGreater(len(agent.q_table), 0)

    def test_corrupt_table_aborts_startup(self):
        with open(self.table1, "w", encoding="utf-8") as f:
            f.write("garbage")
        exit_code = main.main(
            [
                "headless",
                "--ticks",
                "10",
                "--table1",
                self.table1,
                "--table2",
                self.table2,
            ]
        )
        self.assertEqual(exit_code, 1)
        self.assertFalse(os.path.exists(self.table2))

    def test_out_of_range_value_aborts_startup(self):
        with open(self.table1, "w", encoding="utf-8") as f:
            f.write('{"1": {"0": 1' + "0" * 400 + "}}")
        exit_code = main.main(["headless", "--ticks", "10", "--table1", self.table1])
        self.assertEqual(exit_code, 1)

    def test_log_level_choices(self):
        self.assertEqual(main.parse_args(["--log-level", "debug"]).log_level, "DEBUG")
        with mock.patch("sys.stderr"):
            for bad_level in ("basicConfig", "verbose"):
                with self.assertRaises(SystemExit):
                    main.parse_args(["--log-level", bad_level])

    def test_save_failure_is_a_warning(self):
        game = PongGame()
        game.agent2.q_table.set(3, Action.UP, 1.0)
        bad_path = os.path.join(self.tmp_dir.name, "no_such_dir", "t.json")
        with self.assertLogs("main", level="WARNING") as captured:
            saved = main.save_q_tables(game, (bad_path, self.table2))
        self.assertFalse(saved)
        self.assertIn("agent 1", captured.output[0])
        self.assertTrue(os.path.exists(self.table2))

    def test_load_missing_tables_is_not_an_error(self):
        game = PongGame()
        self.assertTrue(main.load_q_tables(game, (self.table1, self.table2)))
        self.assertEqual(len(game.agent1.q_table), 0)


class TestTrainingSession(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.paths = (
            os.path.join(self.tmp_dir.name, "a1.json"),
            os.path.join(self.tmp_dir.name, "a2.json"),
        )
        self.game = PongGame()
        self.session = main.TrainingSession(self.game, self.paths)

    def tearDown(self):
        self.tmp_dir.cleanup()

    def test_headless_tick_limit(self):
        main.run_headless(self.session, max_ticks=30)
        self.assertEqual(self.session.ticks, 30)

    def test_checkpoint_written_on_interval(self):
        self.game.episode_count = config.CHECKPOINT_INTERVAL_EPISODES - 1
        self.session.last_episode = self.game.episode_count

        def finish_episode():
            self.game.episode_count += 1
            return 0.0, 0.0

        with mock.patch.object(self.game, "update", side_effect=finish_episode):
            self.session.tick()
        for path in self.paths:
            self.assertTrue(os.path.exists(path))

    def test_no_checkpoint_mid_interval(self):
        with mock.patch.object(self.game, "update", return_value=(0.0, 0.0)):
            self.session.tick()
        self.assertFalse(os.path.exists(self.paths[0]))

    def test_keyboard_interrupt_stops_headless_run(self):
        with mock.patch.object(self.session, "tick", side_effect=KeyboardInterrupt):
            main.run_headless(self.session)
        self.assertEqual(self.session.ticks, 0)


if __name__ == "__main__":
    unittest.main()
