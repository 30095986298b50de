import gc
import logging
import os
import signal
import threading
import time
from datetime import datetime
from functools import wraps

import psutil
from dotenv import load_dotenv
from flask import Flask, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

load_dotenv()

from ingredient_intel import describe_concern, lookup_ingredient
from ingredient_scanner import (
    analyze_ingredients,
    analyze_product,
    analyze_sodium,
    describe_sodium,
    detect_sneaky_ingredients,
)
from models import ErrorView, Product, ResultsView, SearchResults, ViewState
from product_client import ProductClient, ProductLookupError
from scanner_config import SCORE_LABELS, SODIUM_FDA_NOTE

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

app.config.update(
    # Product records are small JSON documents
    MAX_CONTENT_LENGTH=256 * 1024,
    # Must exceed the client deadline (OFF_DEADLINE_SECONDS) plus one request timeout
    REQUEST_TIMEOUT=int(os.getenv('REQUEST_TIMEOUT', '30')),
)
app.json.sort_keys = False

# Status codes for each lookup failure kind
ERROR_STATUS = {
    'invalid_barcode': 400,
    'not_found': 404,
    'rate_limited': 429,
    'network': 502,
    'server': 502,
    'unknown': 500,
}

product_client = ProductClient()


@app.before_request
def before_request_timing():
    request.start_time = time.time()


@app.after_request
def after_request_logging(response):
    """Log slow requests and keep error responses out of caches"""
    if hasattr(request, 'start_time'):
        processing_time = time.time() - request.start_time
        if processing_time > 5:
            logger.warning("Slow request took %.1fs for %s", processing_time, request.endpoint)

    if response.status_code >= 500:
        response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
        response.headers['Pragma'] = 'no-cache'
        response.headers['Expires'] = '0'

    return response


class RouteTimeout(Exception):
    """Raised by the route alarm. Must not subclass OSError, which HTTP clients catch and retry."""


def with_timeout(seconds):
    """Decorator to add timeout protection to routes"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            # SIGALRM only works from the main thread
            if threading.current_thread() is not threading.main_thread():
                return func(*args, **kwargs)

            def timeout_handler(signum, frame):
                raise RouteTimeout(f"Request timed out after {seconds} seconds")

            old_handler = signal.signal(signal.SIGALRM, timeout_handler)
            signal.alarm(seconds)
            try:
                return func(*args, **kwargs)
            finally:
                signal.alarm(0)
                signal.signal(signal.SIGALRM, old_handler)

        return wrapper
    return decorator


def _json(model, status=200):
    return jsonify(model.model_dump(mode='json')), status


def _view_response(view: ViewState, status=200):
    return _json(view, status)


def _request_json():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _ingredients_from_body():
    data = _request_json()
    ingredients = data.get('ingredients_list', data.get('ingredientsList'))
    if not isinstance(ingredients, list) or not all(isinstance(i, str) for i in ingredients):
        raise ValueError("ingredients_list must be a list of strings")
    return [i.lower() for i in ingredients]


# ROUTES

@app.route('/')
def index():
    return jsonify({
        'service': 'ingredient-scanner',
        'endpoints': [
            'POST /api/analyze',
            'POST /api/analyze/ingredients',
            'POST /api/analyze/sneaky',
            'GET /api/sodium?mg=',
            'GET /api/ingredients/<name>',
            'GET /api/barcode/<code>',
            'GET /api/search?q=',
            'GET /health',
        ],
    })


@app.route('/api/analyze', methods=['POST'])
def analyze():
    """Full analysis of a product record the caller already has"""
    product = Product.model_validate(_request_json())
    result = analyze_product(product)
    logger.info("Analyzed '%s': %s (%d flags)", product.name, SCORE_LABELS[result.score], len(result.flags))
    return _view_response(ResultsView(result=result))


@app.route('/api/analyze/ingredients', methods=['POST'])
def analyze_ingredient_markers():
    flags = analyze_ingredients(_ingredients_from_body())
    return jsonify({
        'flags': [
            dict(flag.model_dump(mode='json'), concern=describe_concern(flag.intel))
            for flag in flags
        ],
    })


@app.route('/api/analyze/sneaky', methods=['POST'])
def analyze_sneaky():
    matches = detect_sneaky_ingredients(_ingredients_from_body())
    return jsonify({'sneaky': [match.model_dump(mode='json') for match in matches]})


@app.route('/api/sodium')
def sodium():
    raw = request.args.get('mg')
    value = None
    if raw not in (None, ''):
        try:
            value = float(raw)
        except ValueError:
            raise ValueError("mg must be a number") from None

    analysis = analyze_sodium(value)
    return jsonify({
        'sodium': analysis.model_dump(mode='json') if analysis else None,
        'description': describe_sodium(analysis),
        'note': SODIUM_FDA_NOTE,
    })


@app.route('/api/ingredients/<path:name>')
def ingredient_intel(name):
    record = lookup_ingredient(name)
    return jsonify({
        'query': name,
        'found': record is not None,
        'intel': record.model_dump(mode='json') if record else None,
        'concern': describe_concern(record),
    })


@app.route('/api/barcode/<code>')
@with_timeout(app.config['REQUEST_TIMEOUT'])
def barcode_lookup(code):
    """Fetch a product by barcode and analyze it"""
    try:
        product = product_client.fetch_product(code)
    except ProductLookupError as e:
        logger.info("Lookup for %s failed: %s", code, e.kind)
        return _view_response(ErrorView(error=e.to_payload()), ERROR_STATUS[e.kind])

    result = analyze_product(product)
    logger.info("Scanned %s '%s': %s", product.code, product.name, SCORE_LABELS[result.score])
    return _view_response(ResultsView(result=result))


@app.route('/api/search')
@with_timeout(app.config['REQUEST_TIMEOUT'])
def search():
    """Search by product name when a barcode can't be found"""
    query = (request.args.get('q') or '').strip()
    try:
        page_size = min(max(int(request.args.get('page_size', 10)), 1), 50)
    except ValueError:
        raise ValueError("page_size must be an integer") from None

    try:
        hits = product_client.search_products(query, page_size=page_size)
    except ProductLookupError as e:
        return _view_response(ErrorView(error=e.to_payload()), ERROR_STATUS[e.kind])

    return _json(SearchResults(query=query, hits=hits))


@app.route('/health')
def health_check():
    """Health check endpoint for load balancer and monitoring"""
    try:
        memory_mb = psutil.Process().memory_info().rss / 1024 / 1024
    except psutil.Error as e:
        logger.warning("Memory check failed: %s", e)
        memory_mb = None

    status = 'healthy'
    if memory_mb is not None and memory_mb > 400:
        gc.collect()
        status = 'high_memory'

    return jsonify({
        'status': status,
        'memory_mb': round(memory_mb, 1) if memory_mb is not None else None,
        'timestamp': datetime.now().isoformat(),
    }), 200


# ERROR HANDLERS

@app.errorhandler(ValidationError)
def invalid_product(e):
    return jsonify({
        'error': 'Invalid request',
        'details': [
            {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
            for err in e.errors()
        ],
    }), 400


@app.errorhandler(ValueError)
def bad_request(e):
    return jsonify({'error': 'Invalid request', 'details': str(e)}), 400


@app.errorhandler(RouteTimeout)
def timeout_error(e):
    gc.collect()
    logger.error("Request timed out: %s", e)
    return jsonify({'error': 'Request Timeout', 'details': 'The request took too long to process.'}), 504


@app.errorhandler(HTTPException)
def http_error(e):
    return jsonify({'error': e.name, 'details': e.description}), e.code


@app.errorhandler(500)
def internal_error(e):
    return jsonify({'error': 'Internal Server Error', 'details': 'Something went wrong. Please try again.'}), 500


if __name__ == '__main__':
    # Only for local development - production uses Gunicorn
    port = int(os.environ.get("PORT", 5000))
    logger.warning("Running with Flask development server. Use Gunicorn for production!")
    app.run(host="0.0.0.0", port=port, debug=False)
