import pytest

from dorm_admin import create_app


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'STORE_BACKEND': 'memory',
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'TESTING': True,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions['docstore']


@pytest.fixture
def dorm(client):
    """A property with three floors, one add-on fee and two room types."""
    resp = client.put('/api/properties/dorm1', json={
        'name': 'Baan Suan',
        'config': {
            'total_floors': 3,
            'initial_meter_reading': 12.5,
            'additional_fees': [{'id': 'wifi', 'name': 'Wi-Fi', 'amount': 200}],
        },
    })
    assert resp.status_code == 200
    fan = client.post('/api/properties/dorm1/room-types',
                      json={'name': 'Fan', 'base_price': 3000}).get_json()
    air = client.post('/api/properties/dorm1/room-types',
                      json={'name': 'Air', 'base_price': 4500, 'is_default': True}).get_json()
    return {'id': 'dorm1', 'fan': fan, 'air': air}
