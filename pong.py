import logging
import random

import pygame

import config
from agent import Action, QLearningAgent

logger = logging.getLogger(__name__)


def intersect(r1, r2):
    # Overlap of (min_x, min_y, max_x, max_y) boxes; touching edges do not count.
    r1_min_x, r1_min_y, r1_max_x, r1_max_y = r1
    r2_min_x, r2_min_y, r2_max_x, r2_max_y = r2
    return (
        r1_min_x < r2_max_x
        and r1_max_x > r2_min_x
        and r1_min_y < r2_max_y
        and r1_max_y > r2_min_y
    )


def discretize_thirds(value, extent):
    # Converts a continuous coordinate into bucket 0, 1 or 2.
    if value < extent / 3:
        return 0
    if value < 2 * extent / 3:
        return 1
    return 2


class PongGame:
    def __init__(self, agent1=None, agent2=None, visualize=False):
        self.visualize = visualize
        self.agent1 = agent1 if agent1 is not None else QLearningAgent(1)
        self.agent2 = agent2 if agent2 is not None else QLearningAgent(2)

        # Simulation state
        self.paddle1_y = self.paddle2_y = self._centered_paddle_y()
        self.ball_x = config.SCREEN_WIDTH / 2
        self.ball_y = config.SCREEN_HEIGHT / 2
        self.ball_vel_x = float(config.BALL_SPEED_X)
        self.ball_vel_y = float(config.BALL_SPEED_Y)
        self.score1 = 0
        self.score2 = 0
        self.episode_count = 0

        # Previous transition per agent, consumed by the next tick's update
        self.prev_state1 = 0
        self.prev_action1 = Action.STAY
        self.prev_state2 = 0
        self.prev_action2 = Action.STAY

        self.screen = None
        self.font = None
        if self.visualize:
            pygame.init()
            self.screen = pygame.display.set_mode(
                (config.SCREEN_WIDTH, config.SCREEN_HEIGHT)
            )
            pygame.display.set_caption(config.WINDOW_TITLE)
            self.font = pygame.font.Font(None, 24)

    @staticmethod
    def _centered_paddle_y():
        return float(config.SCREEN_HEIGHT // 2 - config.PADDLE_HEIGHT // 2)

    def agent_for(self, paddle_id):
        if paddle_id == 1:
            return self.agent1
        if paddle_id == 2:
            return self.agent2
        raise ValueError(f"Unknown paddle id: {paddle_id}")

    def get_paddle_y(self, paddle_id):
        if paddle_id == 1:
            return self.paddle1_y
        if paddle_id == 2:
            return self.paddle2_y
        raise ValueError(f"Unknown paddle id: {paddle_id}")

    def get_state(self, paddle_id):
        # Mixed-radix encoding of the discrete observation for one paddle.
        ball_x_bucket = discretize_thirds(self.ball_x, config.SCREEN_WIDTH)
        ball_y_bucket = discretize_thirds(self.ball_y, config.SCREEN_HEIGHT)

        paddle_center_y = self.get_paddle_y(paddle_id) + config.PADDLE_HEIGHT / 2
        paddle_y_bucket = discretize_thirds(paddle_center_y, config.SCREEN_HEIGHT)

        vel_x_state = 0 if self.ball_vel_x > 0 else 1
        vel_y_state = 0 if self.ball_vel_y > 0 else 1

        half_paddle = config.PADDLE_HEIGHT / 2
        relative_y = self.ball_y - paddle_center_y
        if relative_y < -half_paddle:
            relative_bucket = 0
        elif relative_y > half_paddle:
            relative_bucket = 2
        else:
            relative_bucket = 1

        xs = config.BALL_X_DIVISIONS
        xys = xs * config.BALL_Y_DIVISIONS
        xyps = xys * config.PADDLE_Y_DIVISIONS
        return (
            ball_x_bucket
            + ball_y_bucket * xs
            + paddle_y_bucket * xys
            + vel_x_state * xyps
            + vel_y_state * xyps * 2
            + relative_bucket * xyps * 2 * 2
        )

    def move_paddle(self, paddle_id, action):
        y = self.get_paddle_y(paddle_id)
        if action == Action.UP:
            y -= config.PADDLE_SPEED
        elif action == Action.DOWN:
            y += config.PADDLE_SPEED
        y = min(max(y, 0.0), float(config.SCREEN_HEIGHT - config.PADDLE_HEIGHT))
        if paddle_id == 1:
            self.paddle1_y = y
        else:
            self.paddle2_y = y

    def ball_rect(self):
        r = config.BALL_RADIUS
        return (self.ball_x - r, self.ball_y - r, self.ball_x + r, self.ball_y + r)

    def paddle_rect(self, paddle_id):
        if paddle_id == 1:
            min_x = float(config.PADDLE_INSET)
        else:
            min_x = float(
                config.SCREEN_WIDTH - config.PADDLE_INSET - config.PADDLE_WIDTH
            )
        min_y = self.get_paddle_y(paddle_id)
        return (min_x, min_y, min_x + config.PADDLE_WIDTH, min_y + config.PADDLE_HEIGHT)

    def step_physics(self):
        # Advances the ball one frame and returns (reward1, reward2).
        self.ball_x += self.ball_vel_x
        self.ball_y += self.ball_vel_y

        ball_min_x, ball_min_y, ball_max_x, ball_max_y = self.ball_rect()

        if ball_min_y < 0 or ball_max_y > config.SCREEN_HEIGHT:
            self.ball_vel_y *= -1

        reward1 = 0.0
        reward2 = 0.0

        if intersect(self.paddle_rect(1), self.ball_rect()):
            self.ball_vel_x *= -1
            reward1 += config.HIT_REWARD
            reward2 += config.HIT_PENALTY_OPPONENT

        if intersect(self.paddle_rect(2), self.ball_rect()):
            self.ball_vel_x *= -1
            reward2 += config.HIT_REWARD
            reward1 += config.HIT_PENALTY_OPPONENT

        if ball_min_x < 0:
            self.score2 += 1
            reward2 += config.SCORE_REWARD
            reward1 += config.CONCEDE_PENALTY
            self.reset_ball()
        elif ball_max_x > config.SCREEN_WIDTH:
            self.score1 += 1
            reward1 += config.SCORE_REWARD
            reward2 += config.CONCEDE_PENALTY
            self.reset_ball()

        return reward1, reward2

    def reset_ball(self):
        # Ends an episode: center the ball, send it back the other way.
        self.episode_count += 1
        if self.episode_count % config.EPSILON_DECAY_INTERVAL == 0:
            self.decay_exploration()
        self.ball_x = config.SCREEN_WIDTH / 2
        self.ball_y = config.SCREEN_HEIGHT / 2
        self.ball_vel_x *= -1
        self.ball_vel_y = config.BALL_SPEED_Y * random.uniform(-1.0, 1.0)
        self.paddle1_y = self.paddle2_y = self._centered_paddle_y()

    def decay_exploration(self):
        # Both agents decay together, or neither does.
        if (
            self.agent1.epsilon > config.EPSILON_MIN
            and self.agent2.epsilon > config.EPSILON_MIN
        ):
            self.agent1.decay_epsilon(config.EPSILON_DECAY, config.EPSILON_MIN)
            self.agent2.decay_epsilon(config.EPSILON_DECAY, config.EPSILON_MIN)
            logger.debug(
                "Episode %d: epsilon decayed to %.4f / %.4f",
                self.episode_count,
                self.agent1.epsilon,
                self.agent2.epsilon,
            )

    def update(self):
        # One training tick; returns the rewards paid this tick.
        current_state1 = self.get_state(1)
        current_state2 = self.get_state(2)

        action1 = self.agent1.select_action(current_state1)
        action2 = self.agent2.select_action(current_state2)

        self.move_paddle(1, action1)
        self.move_paddle(2, action2)

        reward1, reward2 = self.step_physics()

        # Credit goes to last tick's decision, which led to the current state.
        self.agent1.update(self.prev_state1, self.prev_action1, reward1, current_state1)
        self.agent2.update(self.prev_state2, self.prev_action2, reward2, current_state2)

        self.prev_state1 = current_state1
        self.prev_action1 = action1
        self.prev_state2 = current_state2
        self.prev_action2 = action2

        return reward1, reward2

    def draw(self):
        if self.screen is None:
            return
        self.screen.fill((0, 0, 0))
        for paddle_id in (1, 2):
            min_x, min_y, _, _ = self.paddle_rect(paddle_id)
            pygame.draw.rect(
                self.screen,
                (255, 255, 255),
                pygame.Rect(
                    int(min_x), int(min_y), config.PADDLE_WIDTH, config.PADDLE_HEIGHT
                ),
            )
        pygame.draw.circle(
            self.screen,
            (255, 255, 255),
            (int(self.ball_x), int(self.ball_y)),
            config.BALL_RADIUS,
        )
        info_lines = [
            f"AI 1: {self.score1}  AI 2: {self.score2}",
            f"Episode: {self.episode_count}",
            f"Epsilon 1: {self.agent1.epsilon:.2f}",
            f"Epsilon 2: {self.agent2.epsilon:.2f}",
        ]
        for i, text_str in enumerate(info_lines):
            text_surf = self.font.render(text_str, True, (200, 200, 200))
            self.screen.blit(text_surf, (4, 4 + i * 20))
        pygame.display.flip()
