import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from clinic.tests.factories import make_admin, make_doctor, make_patient


@pytest.fixture(autouse=True)
def _isolated_cache_and_media(settings, tmp_path):
    # throttles and the doctor directory both live in the locmem cache
    cache.clear()
    settings.MEDIA_ROOT = str(tmp_path / 'media')
    yield
    cache.clear()


@pytest.fixture
def patient(db):
    return make_patient(allergies=['Peanuts'], blood_type='O+')


@pytest.fixture
def doctor(db):
    return make_doctor()


@pytest.fixture
def admin(db):
    return make_admin()


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client
