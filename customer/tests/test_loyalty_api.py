import pytest
from customer.tests.factories import ProfileFactory, UserFactory
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

pytestmark = pytest.mark.django_db


def test_loyalty_status_requires_auth():
    r = APIClient().get("/api/v1/customer/loyalty/")
    assert r.status_code == 401


def test_loyalty_status_with_bearer_token():
    profile = ProfileFactory(total_spent=75_000)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(profile.user)}")

    r = client.get("/api/v1/customer/loyalty/")
    assert r.status_code == 200
    body = r.json()
    assert body["total_spent"] == 75_000
    assert body["tier"]["name"] == "Bronze"
    assert body["next_tier"]["name"] == "Silver"
    assert body["missing_for_next"] == 125_000


def test_loyalty_status_without_profile_is_starter():
    client = APIClient()
    client.force_authenticate(user=UserFactory())
    body = client.get("/api/v1/customer/loyalty/").json()
    assert body["total_spent"] == 0
    assert body["tier"]["name"] == "Starter"
