"""
GiftProof Reveal Server
=======================

Flask application exposing the public side of a committed season: the
commitment, scheduled daily reveals, and a verification endpoint.
"""

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify, request
from flask.typing import ResponseReturnValue
from werkzeug.exceptions import BadRequest, Forbidden, HTTPException

from giftproof.core.db import CommitmentStore
from giftproof.core.errors import GiftProofError
from giftproof.core.models import DEFAULT_BATCH_SIZE, BatchState, RevealPhase, format_timestamp
from giftproof.core.schedule import RevealSchedule
from giftproof.core.verifier import Verifier

logger = logging.getLogger(__name__)

DAY_PATTERN = re.compile(r'^\d{2}$')


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def default_config() -> Dict[str, Any]:
    """Configuration defaults, read from the environment."""
    return {
        'DATABASE': os.environ.get('GIFTPROOF_DB', 'giftproof.db'),
        'SEASON': os.environ.get('GIFTPROOF_SEASON', '2025-season-1'),
        'SEASON_START': os.environ.get('GIFTPROOF_SEASON_START', '2025-12-01'),
        'BATCH_SIZE': int(os.environ.get('GIFTPROOF_BATCH_SIZE', DEFAULT_BATCH_SIZE)),
        'ALLOW_FUTURE_REVEALS': _env_flag('ALLOW_FUTURE_REVEALS'),
        'MERKLE_ROOT': os.environ.get('MERKLE_ROOT'),
        'CLOCK': lambda: datetime.now(timezone.utc),
    }


def create_app(test_config: Optional[Dict[str, Any]] = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        test_config: Optional configuration overriding the environment defaults

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    app.config.from_mapping(default_config())

    if test_config is not None:
        app.config.update(test_config)

    store = app.config.get('STORE') or CommitmentStore(app.config['DATABASE'])
    schedule = RevealSchedule(
        app.config['SEASON_START'],
        batch_size=app.config['BATCH_SIZE'],
        allow_future_reveals=app.config['ALLOW_FUTURE_REVEALS'],
    )
    app.extensions['giftproof'] = {'store': store, 'schedule': schedule}

    def _store() -> CommitmentStore:
        return current_app.extensions['giftproof']['store']

    def _schedule() -> RevealSchedule:
        return current_app.extensions['giftproof']['schedule']

    def _season() -> str:
        return current_app.config['SEASON']

    def _commitment():
        commitment = _store().get_commitment(_season())
        pinned_root = current_app.config.get('MERKLE_ROOT')
        if pinned_root and pinned_root != commitment.root:
            logger.error(
                f"Stored root {commitment.root} differs from announced root {pinned_root}"
            )
            raise GiftProofError("Stored commitment does not match the announced root")
        return commitment

    @app.route('/health', methods=['GET'])
    def health() -> ResponseReturnValue:
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'timestamp': format_timestamp(current_app.config['CLOCK']()),
            'season': _season(),
        })

    @app.route('/commitment', methods=['GET'])
    def get_commitment() -> ResponseReturnValue:
        """Get the published commitment and reveal progress."""
        commitment = _commitment()
        revealed = _store().revealed_indices(commitment.season)
        state = BatchState.from_revealed(len(revealed), commitment.batch_size)
        return jsonify({
            'commitment': commitment.to_public_dict(),
            'state': state.value,
            'revealed_days': sorted(index + 1 for index in revealed),
        })

    @app.route('/reveals/day-<day>', methods=['GET'])
    def get_reveal(day: str) -> ResponseReturnValue:
        """Serve a day's reveal according to the schedule."""
        if not DAY_PATTERN.match(day):
            raise BadRequest('Invalid day format. Use day-01, day-02, etc.')

        day_number = int(day)
        schedule = _schedule()
        if not 1 <= day_number <= schedule.batch_size:
            raise BadRequest(f'Day must be between 1 and {schedule.batch_size}')

        now = current_app.config['CLOCK']()
        phase = schedule.phase(day_number, now)
        if phase is RevealPhase.LOCKED:
            raise Forbidden('This gift has not been revealed yet')

        publisher = _store().load_publisher(_season())
        if phase is RevealPhase.HINT:
            return jsonify(publisher.peek_hint(day_number).model_dump())

        reveal = publisher.reveal_day(day_number)
        _store().mark_revealed(publisher.season, reveal.index)
        return jsonify(reveal.model_dump(mode='json'))

    @app.route('/verify', methods=['POST'])
    def verify_reveal() -> ResponseReturnValue:
        """Verify a submitted reveal against the published commitment."""
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise BadRequest('Request body must be a JSON object')

        result = Verifier(_commitment()).verify_reveal(payload)
        return jsonify(result.model_dump())

    # Error handlers
    @app.errorhandler(GiftProofError)
    def giftproof_error(error: GiftProofError) -> ResponseReturnValue:
        logger.error(f"Request failed: {error}")
        status = 404 if isinstance(error, LookupError) else 500
        return jsonify({
            'error': type(error).__name__,
            'message': str(error)
        }), status

    @app.errorhandler(400)
    def bad_request(error: HTTPException) -> ResponseReturnValue:
        return jsonify({
            'error': 'bad_request',
            'message': error.description
        }), 400

    @app.errorhandler(403)
    def forbidden(error: HTTPException) -> ResponseReturnValue:
        return jsonify({
            'error': 'not_revealed',
            'message': error.description
        }), 403

    @app.errorhandler(404)
    def not_found(error: HTTPException) -> ResponseReturnValue:
        return jsonify({
            'error': 'not_found',
            'message': error.description
        }), 404

    @app.errorhandler(500)
    def internal_error(error: HTTPException) -> ResponseReturnValue:
        return jsonify({
            'error': 'internal_server_error',
            'message': 'An internal server error occurred'
        }), 500

    return app


def run_server(host: str = '0.0.0.0', port: int = 3001, debug: bool = False,
               test_config: Optional[Dict[str, Any]] = None) -> None:
    """Run the reveal server.

    Args:
        host: Host to bind to
        port: Port to listen on
        debug: Enable debug mode
        test_config: Configuration overrides passed to create_app
    """
    app = create_app(test_config)
    app.run(host=host, port=port, debug=debug)
