import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS

# Load env vars from root directory (parent of backend)
root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../'))
load_dotenv(os.path.join(root_dir, '.env'))

from app.routes.program_fulfillment import program_fulfillment_bp
from app.services.supabase_client import supabase_configured

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)


# ============================================================================
# Global Error Handlers and Request Validation
# ============================================================================

def _make_json_error(message: str, status_code: int, error_type: str = None):
    """Create a standardized JSON error response."""
    response_data = {
        'error': message,
        'status_code': status_code
    }
    if error_type:
        response_data['type'] = error_type
    response = jsonify(response_data)
    response.status_code = status_code
    return response


@app.errorhandler(400)
def handle_bad_request(error):
    message = str(error.description) if getattr(error, 'description', None) else 'Bad request'
    return _make_json_error(message, 400, 'bad_request')


@app.errorhandler(404)
def handle_not_found(error):
    return _make_json_error('The requested resource was not found', 404, 'not_found')


@app.errorhandler(405)
def handle_method_not_allowed(error):
    return _make_json_error('Method not allowed', 405, 'method_not_allowed')


@app.errorhandler(500)
def handle_internal_error(error):
    logger.error(f"Internal server error: {error}")
    return _make_json_error('Internal server error', 500, 'internal_error')


@app.errorhandler(Exception)
def handle_unhandled_exception(error):
    """Catch-all handler for unhandled exceptions."""
    logger.exception(f"Unhandled exception: {type(error).__name__}: {error}")
    return _make_json_error('An unexpected error occurred', 500, 'unhandled_exception')


@app.after_request
def ensure_cors_on_errors(response):
    """Ensure CORS headers are present on all responses including errors."""
    if 'Access-Control-Allow-Origin' not in response.headers:
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
    return response


@app.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


@app.route('/health/config', methods=['GET'])
def health_config():
    return jsonify({
        'supabaseConfigured': supabase_configured(),
        'defaultSemester': os.getenv('DEFAULT_SEMESTER', 'FA25'),
    })


app.register_blueprint(program_fulfillment_bp)

if __name__ == '__main__':
    port = int(os.getenv('SERVER_PORT') or os.getenv('PORT', 5000))
    host = os.getenv('HOST', '0.0.0.0')
    debug_mode = os.getenv('DEBUG', 'true').lower() == 'true'
    app.run(host=host, port=port, debug=debug_mode)
