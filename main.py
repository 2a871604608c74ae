import argparse
import logging
import random
import sys

import pygame

import config
from agent import CorruptTableError, StorageUnavailableError
from logger_config import setup_logging
from pong import PongGame

logger = logging.getLogger(__name__)


def load_q_tables(game, table_paths):
    # Returns False if any stored table is corrupt; the caller must not train on it.
    for paddle_id, path in zip((1, 2), table_paths):
        try:
            game.agent_for(paddle_id).load_q_table(path)
        except CorruptTableError as e:
            logger.error("Error loading Q-table for agent %d: %s", paddle_id, e)
            return False
    return True


def save_q_tables(game, table_paths):
    saved_all = True
    for paddle_id, path in zip((1, 2), table_paths):
        try:
            game.agent_for(paddle_id).save_q_table(path)
        except StorageUnavailableError as e:
            logger.warning("Error saving Q-table for agent %d: %s", paddle_id, e)
            saved_all = False
    return saved_all


class TrainingSession:
    """Runs ticks on a game; logs progress and checkpoints between episodes."""

    def __init__(self, game, table_paths):
        self.game = game
        self.table_paths = table_paths
        self.ticks = 0
        self.last_episode = game.episode_count

    def tick(self):
        self.game.update()
        self.ticks += 1
        if self.game.episode_count != self.last_episode:
            self.last_episode = self.game.episode_count
            self._on_episode_end()

    def _on_episode_end(self):
        episode = self.game.episode_count
        if episode % config.LOG_INTERVAL_EPISODES == 0:
            logger.info(
                "Episode %d | Score %d:%d | Epsilon %.4f / %.4f | Ticks %d",
                episode,
                self.game.score1,
                self.game.score2,
                self.game.agent1.epsilon,
                self.game.agent2.epsilon,
                self.ticks,
            )
        if episode % config.CHECKPOINT_INTERVAL_EPISODES == 0:
            logger.info("Checkpoint at episode %d", episode)
            save_q_tables(self.game, self.table_paths)


def run_visual(session):
    clock = pygame.time.Clock()
    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
        if not running:
            break
        session.tick()
        session.game.draw()
        clock.tick(config.FPS)
    pygame.quit()


def run_headless(session, max_ticks=None):
    try:
        while max_ticks is None or session.ticks < max_ticks:
            session.tick()
    except KeyboardInterrupt:
        logger.info("Training interrupted after %d ticks.", session.ticks)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Self-play Q-learning Pong: two tabular agents train each other."
    )
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["visual", "headless"],
        default="visual",
        help="Open a pygame window or train without one (default: visual)",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=None,
        help="Number of ticks to run in headless mode (default: until interrupted)",
    )
    parser.add_argument("--table1", default=config.AGENT1_Q_TABLE_FILENAME)
    parser.add_argument("--table2", default=config.AGENT2_Q_TABLE_FILENAME)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        type=str.upper,
    )
    parser.add_argument("--log-file", default=None)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)
    random.seed()

    table_paths = (args.table1, args.table2)
    game = PongGame(visualize=args.mode == "visual")
    if not load_q_tables(game, table_paths):
        if args.mode == "visual":
            pygame.quit()
        return 1

    session = TrainingSession(game, table_paths)
    logger.info("Starting self-play training (%s mode)", args.mode)
    if args.mode == "visual":
        run_visual(session)
    else:
        run_headless(session, args.ticks)

    logger.info(
        "Stopped after %d ticks, %d episodes. Final score %d:%d",
        session.ticks,
        game.episode_count,
        game.score1,
        game.score2,
    )
    save_q_tables(game, table_paths)
    return 0


if __name__ == "__main__":
    sys.exit(main())
