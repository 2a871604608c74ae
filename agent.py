import json
import logging
import math
import random
from enum import IntEnum

import config

logger = logging.getLogger(__name__)


class Action(IntEnum):
    UP = 0
    DOWN = 1
    STAY = 2


ACTIONS = list(Action)


class QTableError(Exception):
    pass


class CorruptTableError(QTableError):
    """The stored Q-table could not be decoded into a valid table."""


class StorageUnavailableError(QTableError):
    """The Q-table file could not be created or written."""


class QTable:
    # Sparse state -> action -> value mapping. Missing entries read as 0.0.

    def __init__(self, num_states=config.NUM_STATES):
        self.num_states = num_states
        self.rows = {}

    def __len__(self):
        return len(self.rows)

    def __contains__(self, state):
        return state in self.rows

    def get(self, state, action):
        row = self.rows.get(state)
        if row is None:
            return 0.0
        return row.get(Action(action), 0.0)

    def set(self, state, action, value):
        self.rows.setdefault(state, {})[Action(action)] = float(value)

    def row(self, state):
        # None means the state was never visited.
        return self.rows.get(state)

    def max_value(self, state):
        if state not in self.rows:
            return 0.0
        return max(self.get(state, a) for a in ACTIONS)

    def items(self):
        for state, row in self.rows.items():
            for action, value in row.items():
                yield state, action, value

    def to_json_dict(self):
        return {
            str(state): {str(int(action)): value for action, value in row.items()}
            for state, row in sorted(self.rows.items())
        }

    @classmethod
    def from_json_dict(cls, data, num_states=config.NUM_STATES):
        # Builds a complete table or raises; never returns a partial one.
        if not isinstance(data, dict):
            raise CorruptTableError("Q-table must be a JSON object")
        table = cls(num_states)
        for state_key, row in data.items():
            state = _parse_index(state_key, num_states, "state")
            if not isinstance(row, dict):
                raise CorruptTableError(
                    f"Row for state {state_key!r} is not an object"
                )
            for action_key, value in row.items():
                action = _parse_index(action_key, len(ACTIONS), "action")
                table.set(state, action, _parse_q_value(value, state_key, action_key))
        return table


def _parse_q_value(value, state_key, action_key):
    # Only finite numbers; NaN would break the '>' scan in select_action.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CorruptTableError(
            f"Q-value for ({state_key}, {action_key}) is not a number: {value!r}"
        )
    try:
        q_val = float(value)
    except OverflowError:
        raise CorruptTableError(
            f"Q-value for ({state_key}, {action_key}) is out of range"
        ) from None
    if not math.isfinite(q_val):
        raise CorruptTableError(
            f"Q-value for ({state_key}, {action_key}) is not finite: {q_val!r}"
        )
    return q_val


def _parse_index(key, upper_bound, what):
    try:
        index = int(key)
    except (TypeError, ValueError):
        raise CorruptTableError(f"Invalid {what} key {key!r}") from None
    if not 0 <= index < upper_bound:
        raise CorruptTableError(
            f"{what.capitalize()} {index} out of range [0, {upper_bound})"
        )
    return index


class QLearningAgent:
    def __init__(
        self,
        paddle_id,
        alpha=config.ALPHA,
        gamma=config.GAMMA,
        epsilon=config.EPSILON_START,
        q_table=None,
    ):
        if not 0 < alpha <= 1:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        if not 0 <= gamma <= 1:
            raise ValueError(f"gamma must be in [0, 1], got {gamma}")
        self.paddle_id = paddle_id
        self.q_table = q_table if q_table is not None else QTable()
        self.alpha = alpha
        self.gamma = gamma
        self.epsilon = epsilon  # Exploration-exploitation trade-off

    def random_action(self):
        return random.choice(ACTIONS)

    def select_action(self, state):
        # Epsilon-greedy action selection
        if random.random() < self.epsilon:
            return self.random_action()  # Explore

        # No knowledge of this state yet: nothing to exploit.
        if self.q_table.row(state) is None:
            return self.random_action()

        # Strict '>' keeps the lowest-indexed action among ties.
        best_action = ACTIONS[0]
        best_q = self.q_table.get(state, best_action)
        for action in ACTIONS[1:]:
            q_val = self.q_table.get(state, action)
            if q_val > best_q:
                best_q = q_val
                best_action = action
        return best_action

    def update(self, state, action, reward, next_state):
        # Q(s,a) <- Q(s,a) + alpha * (reward + gamma * max_Q(s') - Q(s,a))
        old_q = self.q_table.get(state, action)
        best_next_q = self.q_table.max_value(next_state)
        new_q = old_q + self.alpha * (reward + self.gamma * best_next_q - old_q)
        self.q_table.set(state, action, new_q)
        return new_q

    def decay_epsilon(self, amount=config.EPSILON_DECAY, floor=config.EPSILON_MIN):
        self.epsilon = max(floor, self.epsilon - amount)
        return self.epsilon

    def save_q_table(self, filename):
        # Overwrites the file unconditionally.
        try:
            with open(filename, "w", encoding="utf-8") as f:
                json.dump(self.q_table.to_json_dict(), f)
        except OSError as e:
            raise StorageUnavailableError(
                f"Could not save Q-table for agent {self.paddle_id} "
                f"to '{filename}': {e}"
            ) from e
        logger.info(
            "Q-table for agent %d saved to '%s' (%d states)",
            self.paddle_id,
            filename,
            len(self.q_table),
        )

    def load_q_table(self, filename):
        try:
            with open(filename, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info(
                "Q-table file '%s' not found for agent %d. "
                "Starting with an empty Q-table.",
                filename,
                self.paddle_id,
            )
            return False
        except ValueError as e:
            # JSONDecodeError, bad encoding, integers past the digit limit
            raise CorruptTableError(
                f"Failed to decode Q-table for agent {self.paddle_id} "
                f"from '{filename}': {e}"
            ) from e
        except OSError as e:
            raise CorruptTableError(
                f"Failed to read Q-table for agent {self.paddle_id} "
                f"from '{filename}': {e}"
            ) from e

        self.q_table = QTable.from_json_dict(data, self.q_table.num_states)
        logger.info(
            "Q-table for agent %d loaded from '%s' (%d states)",
            self.paddle_id,
            filename,
            len(self.q_table),
        )
        return True
