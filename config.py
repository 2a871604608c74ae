# --- Arena & Object Geometry ---
SCREEN_WIDTH = 640
SCREEN_HEIGHT = 480
PADDLE_WIDTH = 20
PADDLE_HEIGHT = 80
PADDLE_INSET = 50  # Distance from side wall to the paddle's outer edge
BALL_RADIUS = 10
PADDLE_SPEED = 50
BALL_SPEED_X = 50
BALL_SPEED_Y = 50

# --- State Discretization ---
BALL_X_DIVISIONS = 3
BALL_Y_DIVISIONS = 3
PADDLE_Y_DIVISIONS = 3
NUM_STATES = BALL_X_DIVISIONS * BALL_Y_DIVISIONS * PADDLE_Y_DIVISIONS * 2 * 2 * 3

# --- Q-Learning Parameters ---
ALPHA = 0.1  # Learning rate
GAMMA = 0.9  # Discount factor
EPSILON_START = 0.1  # Initial exploration rate
EPSILON_DECAY = 0.001  # Subtracted from epsilon every decay interval
EPSILON_MIN = 0.01  # Exploration floor
EPSILON_DECAY_INTERVAL = 100  # Episodes between epsilon decays

# --- Rewards ---
HIT_REWARD = 0.1  # Paid to the paddle that touches the ball
HIT_PENALTY_OPPONENT = -0.01  # Paid to the other paddle on a touch
SCORE_REWARD = 1.0
CONCEDE_PENALTY = -1.0

# --- Persistence ---
AGENT1_Q_TABLE_FILENAME = "agent1_q_table.json"
AGENT2_Q_TABLE_FILENAME = "agent2_q_table.json"

# --- Runtime ---
FPS = 60
WINDOW_TITLE = "Pong AI"
LOG_INTERVAL_EPISODES = 100  # Episodes between progress logs
CHECKPOINT_INTERVAL_EPISODES = 1000  # Episodes between Q-table saves
