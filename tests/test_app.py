"""
Tests for the Flask service. The Open Food Facts client is swapped for a
stub so no request leaves the process.
"""
import signal

import pytest

import app as scanner_app
from models import Product, SearchHit
from product_client import NetworkError, ProductNotFoundError, RateLimitedError
from scanner_config import SODIUM_UNAVAILABLE_MESSAGE, UNKNOWN_INGREDIENT_MESSAGE

COLA_BODY = {
    "name": "Cola",
    "ingredientsList": ["water", "high fructose corn syrup", "citric acid"],
    "nutrition": {"sodium": 800},
    "novaGroup": 4,
}


class StubClient:
    def __init__(self, product=None, error=None, hits=()):
        self.product = product
        self.error = error
        self.hits = list(hits)
        self.searched = []

    def fetch_product(self, barcode):
        if self.error:
            raise self.error
        return self.product

    def search_products(self, query, page_size=10):
        if self.error:
            raise self.error
        self.searched.append((query, page_size))
        return self.hits


@pytest.fixture
def client():
    scanner_app.app.config['TESTING'] = True
    with scanner_app.app.test_client() as client:
        yield client


@pytest.fixture
def stub(monkeypatch):
    def install(**kwargs):
        fake = StubClient(**kwargs)
        monkeypatch.setattr(scanner_app, 'product_client', fake)
        return fake
    return install


class TestAnalyze:
    """POST /api/analyze"""

    def test_full_analysis(self, client):
        response = client.post('/api/analyze', json=COLA_BODY)
        data = response.get_json()

        assert response.status_code == 200
        assert data['view'] == 'results'
        result = data['result']
        assert result['score'] == 'poor'
        assert result['product']['nova_group'] == 4
        assert [f['ingredient'] for f in result['flags']] == ['high fructose corn syrup']
        assert result['flags'][0]['intel']['concern_level'] == 'high'
        assert result['sodium'] == {'milligrams': 800, 'percent_dv': 35, 'level': 'high'}

    def test_body_must_be_object(self, client):
        response = client.post('/api/analyze', json=['water'])

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid request'

    def test_invalid_product_fields(self, client):
        response = client.post('/api/analyze', json={'novaGroup': 'lots'})
        data = response.get_json()

        assert response.status_code == 400
        assert data['details'][0]['field'] == 'novaGroup'

    def test_ingredient_flags(self, client):
        response = client.post('/api/analyze/ingredients', json={'ingredients_list': ['Water', 'Aspartame']})
        flags = response.get_json()['flags']

        assert response.status_code == 200
        assert flags[0]['ingredient'] == 'aspartame'
        assert flags[0]['concern'] == 'High concern'

    def test_ingredients_must_be_strings(self, client):
        response = client.post('/api/analyze/ingredients', json={'ingredients_list': 'water, sugar'})
        assert response.status_code == 400

    def test_sneaky(self, client):
        response = client.post('/api/analyze/sneaky', json={'ingredientsList': ['yeast extract', 'salt']})
        sneaky = response.get_json()['sneaky']

        assert [m['term'] for m in sneaky] == ['Yeast Extract']


class TestLookups:
    """Sodium and knowledge base endpoints."""

    def test_sodium(self, client):
        data = client.get('/api/sodium?mg=100').get_json()

        assert data['sodium'] == {'milligrams': 100, 'percent_dv': 4, 'level': 'low'}

    def test_sodium_unavailable(self, client):
        data = client.get('/api/sodium').get_json()

        assert data['sodium'] is None
        assert data['description'] == SODIUM_UNAVAILABLE_MESSAGE

    def test_sodium_must_be_numeric(self, client):
        assert client.get('/api/sodium?mg=lots').status_code == 400

    def test_known_ingredient(self, client):
        data = client.get('/api/ingredients/aspartame').get_json()

        assert data['found'] is True
        assert data['intel']['name'] == 'Aspartame'
        assert data['concern'] == 'High concern'

    def test_unknown_ingredient(self, client):
        data = client.get('/api/ingredients/red%2040').get_json()

        assert data['found'] is False
        assert data['intel'] is None
        assert data['concern'] == UNKNOWN_INGREDIENT_MESSAGE


class TestBarcode:
    """GET /api/barcode/<code>"""

    def test_results_view(self, client, stub):
        stub(product=Product(code='5449000000996', name='Cola', ingredients_list=['water', 'aspartame']))
        response = client.get('/api/barcode/5449000000996')
        data = response.get_json()

        assert response.status_code == 200
        assert data['view'] == 'results'
        assert data['result']['product']['code'] == '5449000000996'
        assert data['result']['score'] == 'okay'

    def test_not_found_offers_search(self, client, stub):
        stub(error=ProductNotFoundError())
        response = client.get('/api/barcode/5449000000996')
        data = response.get_json()

        assert response.status_code == 404
        assert data['view'] == 'error'
        assert data['error']['kind'] == 'not_found'
        assert data['error']['offer_search'] is True

    @pytest.mark.parametrize("error,status", [
        (RateLimitedError(), 429),
        (NetworkError(), 502),
    ])
    def test_lookup_error_status(self, client, stub, error, status):
        stub(error=error)
        response = client.get('/api/barcode/5449000000996')

        assert response.status_code == status
        assert response.get_json()['error']['kind'] == error.kind

    def test_invalid_barcode(self, client):
        response = client.get('/api/barcode/abc')

        assert response.status_code == 400
        assert response.get_json()['error']['kind'] == 'invalid_barcode'

    def test_route_timeout_is_not_retried_as_network_error(self, client, monkeypatch):
        """The alarm must get past client code that retries on OSError."""
        class SlowClient(StubClient):
            def fetch_product(self, barcode):
                for _ in range(3):
                    try:
                        signal.raise_signal(signal.SIGALRM)
                    except OSError:
                        continue
                raise NetworkError()

        monkeypatch.setattr(scanner_app, 'product_client', SlowClient())
        response = client.get('/api/barcode/5449000000996')

        assert response.status_code == 504
        assert response.get_json()['error'] == 'Request Timeout'

    def test_route_timeout_is_not_an_os_error(self):
        assert not issubclass(scanner_app.RouteTimeout, OSError)


class TestSearch:
    """GET /api/search"""

    def test_search_hits(self, client, stub):
        fake = stub(hits=[SearchHit(code='5449000000996', name='Cola')])
        data = client.get('/api/search?q=cola&page_size=500').get_json()

        assert data['query'] == 'cola'
        assert data['hits'][0]['name'] == 'Cola'
        assert fake.searched == [('cola', 50)]

    def test_search_error(self, client, stub):
        stub(error=NetworkError())
        response = client.get('/api/search?q=cola')

        assert response.status_code == 502
        assert response.get_json()['view'] == 'error'


class TestService:

    def test_index(self, client):
        data = client.get('/').get_json()
        assert 'POST /api/analyze' in data['endpoints']

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['status'] in ('healthy', 'high_memory')

    def test_unknown_route_is_json(self, client):
        response = client.get('/nope')

        assert response.status_code == 404
        assert response.get_json()['error'] == 'Not Found'
