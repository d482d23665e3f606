from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request

from tunebox.errors import BadRequest, NotFound
from tunebox.models.track import Track
from tunebox.routes.utils import entitlement_engine, handle_errors, play_recorder
from tunebox.services.entitlement import PlayReason
from tunebox.utils.auth import token_required

playback_bp = Blueprint('playback', __name__, url_prefix='/api/tracks')


def _published_track_or_404(track_id):
    track = Track.get_published(track_id)
    if track is None:
        raise NotFound('Track not found')
    return track


def _denied(decision):
    return jsonify({'error': 'Play limit exceeded', 'success': False, **decision.to_dict()}), HTTPStatus.FORBIDDEN


@playback_bp.route('/<uuid:track_id>/can-play', methods=['GET'])
@token_required
@handle_errors
def can_play(current_user, track_id):
    """Tell the client whether the track is playable and why"""
    _published_track_or_404(track_id)
    decision = entitlement_engine().evaluate(current_user.id, track_id)
    return jsonify(decision.to_dict()), HTTPStatus.OK


@playback_bp.route('/<uuid:track_id>/play', methods=['POST'])
@token_required
@handle_errors
def play(current_user, track_id):
    """Record a play, or mark the latest one completed with action=complete"""
    _published_track_or_404(track_id)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    action = data.get('action')

    if action == 'complete':
        play_recorder().record_completion(current_user.id, track_id)
        return jsonify({'success': True}), HTTPStatus.OK
    if action is not None:
        raise BadRequest(f"Unknown action: {action}")

    decision = entitlement_engine().evaluate(current_user.id, track_id)
    if not decision.can_play:
        return _denied(decision)

    play_recorder().record_granted_play(current_user.id, track_id, decision)

    body = {'success': True, **decision.to_dict()}
    if decision.reason is PlayReason.free_limit:
        body['remainingPlays'] = decision.remaining_plays - 1
    return jsonify(body), HTTPStatus.OK


@playback_bp.route('/<uuid:track_id>/stream', methods=['GET'])
@token_required
@handle_errors
def stream(current_user, track_id):
    """Re-check entitlement and hand out a short-lived audio URL"""
    track = _published_track_or_404(track_id)
    decision = entitlement_engine().evaluate(current_user.id, track_id)
    if not decision.can_play:
        return _denied(decision)

    expires_in = current_app.config['STREAM_URL_EXPIRES']
    stream_url = current_app.extensions['storage'].get_stream_url(track.file_path, expires_in)
    return jsonify({
        'streamUrl': stream_url,
        'expiresIn': expires_in,
        **decision.to_dict()
    }), HTTPStatus.OK
