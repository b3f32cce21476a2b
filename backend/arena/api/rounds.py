from flask import Blueprint, jsonify, request
from arena import host
from arena.exceptions import ConfigurationError, NotEnoughPlayers, RoundAlreadyActive, RoundNotFound
from arena.services.history import list_round_history
from arena.services.rounds.registry import GAME_TYPES


rounds = Blueprint('rounds', __name__)

# Per-round options a client may pass through to the engine
_ROUND_OPTIONS = ('time_limit', 'countdown_time', 'target_score', 'obstacle_count')


def _int_option(data, key):
    value = data.get(key)
    if value is None:
        return None
    return int(value)


@rounds.route('/types', methods=['GET'])
def list_types():
    return jsonify([gt.to_dict() for gt in GAME_TYPES.values()])


@rounds.route('/create', methods=['POST'])
def create_round():
    data = request.get_json(silent=True) or {}
    config = {}
    try:
        for key in _ROUND_OPTIONS:
            value = _int_option(data, key)
            if value is not None:
                config[key] = value
    except (TypeError, ValueError):
        return jsonify({'error': 'Round options must be integers'}), 400

    try:
        game = host.start_round(data.get('type'), config)
    except RoundAlreadyActive as exc:
        return jsonify({'error': str(exc), 'round_id': exc.round_id}), 409
    except (ConfigurationError, NotEnoughPlayers) as exc:
        return jsonify({'error': str(exc)}), 400
    host.ensure_loop()
    return jsonify(game.get_status()), 201


@rounds.route('/status', methods=['GET'])
def round_status():
    return jsonify(host.status())


@rounds.route('/end', methods=['POST'])
def end_round():
    data = request.get_json(silent=True) or {}
    result = data.get('result') or 'cancelled'
    try:
        summary = host.end_round(result, data.get('winner_id'))
    except RoundNotFound as exc:
        return jsonify({'error': str(exc)}), 404
    if summary is None:
        # Idempotent end: already over
        return jsonify({'message': 'Round already ended', 'status': host.status()}), 200
    return jsonify(summary)


@rounds.route('/eliminate', methods=['POST'])
def eliminate_player():
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    if not player_id:
        return jsonify({'error': 'player_id is required'}), 400
    try:
        return jsonify(host.eliminate(player_id))
    except RoundNotFound as exc:
        return jsonify({'error': str(exc)}), 404


@rounds.route('/score', methods=['POST'])
def add_score():
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    if not player_id:
        return jsonify({'error': 'player_id is required'}), 400
    try:
        points = int(data.get('points', 1))
    except (TypeError, ValueError):
        return jsonify({'error': 'points must be an integer'}), 400
    try:
        return jsonify(host.add_score(player_id, points))
    except RoundNotFound as exc:
        return jsonify({'error': str(exc)}), 404


@rounds.route('/goal', methods=['POST'])
def reach_goal():
    data = request.get_json(silent=True) or {}
    player_id = data.get('player_id')
    if not player_id:
        return jsonify({'error': 'player_id is required'}), 400
    try:
        return jsonify(host.reach_goal(player_id))
    except RoundNotFound as exc:
        return jsonify({'error': str(exc)}), 404


@rounds.route('/history', methods=['GET'])
def round_history():
    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        limit = 50
    limit = max(1, limit)
    return jsonify([row.to_dict() for row in list_round_history(limit)])


@rounds.route('/world', methods=['GET'])
def world_snapshot():
    with host.lock:
        return jsonify(host.world.serialize())
