from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from .models import db, User, ROLE_PLAYER

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Scoreline prediction server!'})


@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    name = data.get('name')
    password = data.get('password')
    if not isinstance(name, str) or not name.strip() or not isinstance(password, str) or not password:
        return jsonify({'error': 'Missing name or password'}), 400
    name = name.strip()
    email = data.get('email')
    team_name = data.get('team_name')
    if email is not None and not isinstance(email, str):
        return jsonify({'error': 'Invalid email'}), 400
    if team_name is not None and not isinstance(team_name, str):
        return jsonify({'error': 'Invalid team name'}), 400
    email = (email or '').strip() or None
    if User.query.filter_by(name=name).first():
        return jsonify({'error': 'Name already exists'}), 400
    if email and User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400

    # New accounts are always players
    new_user = User(name=name, email=email, team_name=team_name, role=ROLE_PLAYER)
    new_user.set_password(password)
    db.session.add(new_user)
    db.session.commit()
    login_user(new_user)
    # every cached table lists all players
    current_app.extensions['standings_cache'].clear()
    current_app.logger.info(f"[register] user={new_user.id}")
    return jsonify({'success': True, 'user': new_user.to_dict()}), 201


@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    name = data.get('name')
    password = data.get('password')
    user = User.query.filter_by(name=name).first() if isinstance(name, str) else None
    if user and isinstance(password, str) and user.check_password(password):
        login_user(user, remember=True)
        return jsonify({'success': True, 'user': user.to_dict()})
    return jsonify({'error': 'Invalid name or password'}), 401


@main.route('/check_login', methods=['GET'])
@login_required
def check_login():
    return jsonify({'success': True, 'user': current_user.to_dict()})


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})
