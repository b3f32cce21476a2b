from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

from arena.services.rounds.host import RoundHost  # noqa: E402

host = RoundHost()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Settings are validated here, once; a bad value stops startup
    host.init_app(flask_app, socketio)

    from arena.main import main
    flask_app.register_blueprint(main)

    from arena.api.rounds import rounds
    flask_app.register_blueprint(rounds, url_prefix='/api/rounds')

    from arena.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from arena import models  # noqa: F401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the round history tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            click.echo('Database has been reset!')

    @click.command('rounds-history')
    @click.option('--limit', default=20, show_default=True, help='How many rounds to list.')
    def rounds_history_command(limit):
        """Lists the most recently finished rounds."""
        from arena.services.history import list_round_history
        with flask_app.app_context():
            for row in list_round_history(limit):
                winner = row.winner_id or '-'
                click.echo(f'{row.id}  {row.game_type:<8} {row.result:<9} winner={winner} players={row.player_count}')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(rounds_history_command)

    return flask_app
