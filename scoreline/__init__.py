import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    logging.getLogger('scoreline').setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=flask_app.config.get('CORS_ORIGINS', []))

    from scoreline.services.standings import StandingsCache
    flask_app.extensions['standings_cache'] = StandingsCache(
        maxsize=flask_app.config.get('STANDINGS_CACHE_SIZE', 128)
    )

    # Import and register blueprints here
    from scoreline.main import main
    flask_app.register_blueprint(main)

    from scoreline.api.rounds import rounds
    from scoreline.api.fixtures import fixtures
    from scoreline.api.predictions import predictions
    from scoreline.api.standings import standings
    from scoreline.api.leagues import leagues
    from scoreline.api.users import users
    from scoreline.api.dashboard import dashboard
    flask_app.register_blueprint(rounds, url_prefix='/api/rounds')
    flask_app.register_blueprint(fixtures, url_prefix='/api/fixtures')
    flask_app.register_blueprint(predictions, url_prefix='/api/predictions')
    flask_app.register_blueprint(standings, url_prefix='/api/standings')
    flask_app.register_blueprint(leagues, url_prefix='/api/leagues')
    flask_app.register_blueprint(users, url_prefix='/api/users')
    flask_app.register_blueprint(dashboard, url_prefix='/api/dashboard')

    from scoreline.errors import ScorelineError

    @flask_app.errorhandler(ScorelineError)
    def handle_domain_error(exc):
        flask_app.logger.info(f"[domain-error] {type(exc).__name__}: {exc.message}")
        return jsonify({'error': exc.message}), exc.http_status

    # Flask-Login user loader
    from scoreline.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from scoreline.models import User, ROLE_ADMIN, ROLE_PLAYER
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            admin = User(name='admin', role=ROLE_ADMIN)
            admin.set_password('password')
            db.session.add(admin)
            # Seed players
            players = ['player1', 'player2', 'player3']
            for name in players:
                user = User(name=name, role=ROLE_PLAYER, team_name=f'{name} FC')
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('score-round')
    @click.argument('round_id', type=int)
    def score_round_command(round_id):
        """Scores a CLOSED round and marks it COMPLETED."""
        from scoreline.services.scoring import score_round
        with flask_app.app_context():
            try:
                summary = score_round(db.session, round_id)
            except ScorelineError as exc:
                raise click.ClickException(exc.message)
            print(f"Round {round_id} scored: {summary['scored_predictions']} predictions "
                  f"across {summary['scored_fixtures']} fixtures.")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(score_round_command)

    return flask_app
