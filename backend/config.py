import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///arena.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [o for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173'
    ).split(',') if o]
    # Round timing (milliseconds)
    ROUND_COUNTDOWN_MS = int(os.environ.get('ROUND_COUNTDOWN_MS', '5000'))
    ROUND_CLEANUP_DELAY_MS = int(os.environ.get('ROUND_CLEANUP_DELAY_MS', '5000'))
    ROUND_LOBBY_ANNOUNCE_DELAY_MS = int(os.environ.get('ROUND_LOBBY_ANNOUNCE_DELAY_MS', '3000'))
    TICK_INTERVAL_MS = int(os.environ.get('TICK_INTERVAL_MS', '50'))
    # Game type used when a round is requested without one
    DEFAULT_GAME_TYPE = os.environ.get('DEFAULT_GAME_TYPE', 'reach')
    # Start the next round after this much idle time with players present. 0 disables.
    AUTO_START_DELAY_MS = int(os.environ.get('AUTO_START_DELAY_MS', '20000'))
    # Obstacles scattered at the start of a reach round
    OBSTACLE_COUNT = int(os.environ.get('OBSTACLE_COUNT', '4'))
    # Minimum players (game types may require more)
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '1'))
    # Optional: heartbeat interval for timer worker logs (ms). 0 disables.
    TIMER_HEARTBEAT_MS = int(os.environ.get('TIMER_HEARTBEAT_MS', '0'))
