from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
import logging
import os

from cipher import CipherService
from config import config
from errors import (
    DecryptionError,
    EncryptionError,
    NotFoundError,
    SchemaValidationError,
    UnsupportedAlgorithmError,
    ValidationError,
)
from models import db
from schemas import parse_history
from storage import DatabaseStorage

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

api = Blueprint('api', __name__)

CIPHER_ERRORS = (ValidationError, UnsupportedAlgorithmError, EncryptionError, DecryptionError)
MAX_GENERATED_KEY_LENGTH = 256
MAX_HISTORY_ID = 2 ** 63 - 1  # signed 64-bit column range


def get_storage():
    return current_app.extensions['cipher_storage']


def create_app(config_name=None):
    """Build the Flask application for the given configuration name"""
    config_name = config_name or os.environ.get('FLASK_ENV', 'development')
    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))
    logging.getLogger().setLevel(app.config['LOG_LEVEL'])

    CORS(app)  # Enable CORS for frontend communication
    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.extensions['cipher_storage'] = DatabaseStorage.from_config(app.config)
    app.register_blueprint(api)
    app.register_error_handler(404, not_found)
    app.register_error_handler(405, method_not_allowed)
    return app


@api.route('/', methods=['GET'])
def home():
    """Health check endpoint"""
    return jsonify({
        'status': 'success',
        'message': 'Cipher Lab backend is running',
        'supported_algorithms': CipherService.SUPPORTED_ALGORITHMS,
        'supported_modes': CipherService.SUPPORTED_MODES,
    })


def _run_cipher(operation):
    """Shared body of the encrypt and decrypt endpoints"""
    try:
        data = request.get_json(silent=True)

        if not data or not isinstance(data, dict):
            return jsonify({'error': 'No JSON data provided'}), 400

        # Validate required fields
        if not data.get('text') or not data.get('algorithm') or not data.get('key'):
            return jsonify({'error': 'Missing required parameters: text, algorithm, and key are required'}), 400

        options = data.get('options')
        if options is not None and not isinstance(options, dict):
            return jsonify({'error': 'options must be an object'}), 400

        try:
            result = CipherService.run_operation(operation, data['text'], data['key'], data['algorithm'], options)
        except CIPHER_ERRORS as e:
            return jsonify({'error': str(e)}), 400

        response = {
            'success': True,
            'result': result.to_dict()
        }
        if data.get('saveHistory'):
            history = get_storage().save_history(result.to_history(operation, data['text']))
            response['historyId'] = history.id
        return jsonify(response)

    except Exception as e:
        logger.error(f"Unexpected error in {operation} endpoint: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500


@api.route('/api/encrypt', methods=['POST'])
def encrypt():
    """Encrypt text endpoint"""
    return _run_cipher('encrypt')


@api.route('/api/decrypt', methods=['POST'])
def decrypt():
    """Decrypt text endpoint"""
    return _run_cipher('decrypt')


@api.route('/api/generate-key', methods=['POST'])
def generate_key():
    """Generate a random passphrase"""
    try:
        data = request.get_json(silent=True) or {}
        length = data.get('length', 16)
        if isinstance(length, int) and length > MAX_GENERATED_KEY_LENGTH:
            return jsonify({'error': f'Key length must be at most {MAX_GENERATED_KEY_LENGTH}'}), 400
        try:
            key = CipherService.generate_random_key(length)
        except ValidationError as e:
            return jsonify({'error': str(e)}), 400
        return jsonify({'key': key, 'length': len(key)})
    except Exception as e:
        logger.error(f"Unexpected error in generate-key endpoint: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500


@api.route('/api/cipher-history', methods=['POST'])
def create_history():
    """Save a cipher operation history record"""
    try:
        record = parse_history(request.get_json(silent=True))
        history = get_storage().save_history(record)
        return jsonify(history.to_dict()), 201
    except SchemaValidationError as e:
        return jsonify({'error': str(e), 'errors': e.errors}), 400
    except Exception as e:
        logger.error(f"Unexpected error saving cipher history: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500


@api.route('/api/cipher-history', methods=['GET'])
def list_history():
    """List the newest history records, ?limit=N (default 10)"""
    raw_limit = request.args.get('limit')
    limit = current_app.config['HISTORY_DEFAULT_LIMIT']
    if raw_limit is not None:
        try:
            limit = int(raw_limit)
        except ValueError:
            return jsonify({'error': 'Invalid limit'}), 400
        if limit < 1:
            return jsonify({'error': 'Invalid limit'}), 400
    limit = min(limit, current_app.config['HISTORY_MAX_LIMIT'])

    try:
        histories = get_storage().list_histories(limit)
        return jsonify([history.to_dict() for history in histories])
    except Exception as e:
        logger.error(f"Unexpected error listing cipher history: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500


@api.route('/api/cipher-history/<history_id>', methods=['GET'])
def get_history(history_id):
    """Fetch a single history record"""
    try:
        history_id = int(history_id)
    except ValueError:
        return jsonify({'error': 'Invalid ID format'}), 400
    if not 1 <= history_id <= MAX_HISTORY_ID:
        return jsonify({'error': 'Invalid ID format'}), 400

    try:
        history = get_storage().get_history_by_id(history_id)
        return jsonify(history.to_dict())
    except NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except Exception as e:
        logger.error(f"Unexpected error fetching cipher history {history_id}: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500


@api.route('/api/cipher-history', methods=['DELETE'])
def clear_history():
    """Clear all cipher history"""
    try:
        deleted = get_storage().clear_histories()
        return jsonify({'message': 'All history records cleared successfully', 'deleted': deleted})
    except Exception as e:
        logger.error(f"Unexpected error clearing cipher history: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500


def not_found(error):
    return jsonify({'error': 'Endpoint not found'}), 404


def method_not_allowed(error):
    return jsonify({'error': 'Method not allowed'}), 405
