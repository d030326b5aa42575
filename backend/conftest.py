"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``blob_store`` fixture swapping MinIO for an in-memory store.
  - ``create_user`` / ``create_role`` / ``create_citizen`` /
    ``create_category`` factory fixtures.
  - ``stage_photo`` helper that stages a small PNG through the service.
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient

from core.domain.exceptions import StorageError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class InMemoryBlobStore:
    """
    Dict-backed stand-in for ``files.storage.MinioBlobStore``.

    Objects are keyed by ``(bucket, key)``.  Add a key suffix to
    ``fail_copy_on`` to make ``copy`` raise ``StorageError`` for every
    destination key ending with it.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.fail_copy_on: set[str] = set()
        self.fail_presign = False

    def put(self, bucket, key, data, content_type):
        self.objects[(bucket, key)] = (data, content_type)
        return key

    def get(self, bucket, key):
        try:
            return self.objects[(bucket, key)][0]
        except KeyError:
            raise StorageError(f"No object {key} in {bucket}")

    def copy(self, bucket, src_key, dst_key):
        if any(dst_key.endswith(suffix) for suffix in self.fail_copy_on):
            raise StorageError(f"Simulated copy failure for {dst_key}")
        try:
            self.objects[(bucket, dst_key)] = self.objects[(bucket, src_key)]
        except KeyError:
            raise StorageError(f"No object {src_key} in {bucket}")

    def delete(self, bucket, key):
        self.objects.pop((bucket, key), None)

    def exists(self, bucket, key):
        return (bucket, key) in self.objects

    def presign(self, bucket, key, ttl):
        if self.fail_presign:
            raise StorageError("Simulated presign failure")
        return f"http://minio.test/{bucket}/{key}?expires={int(ttl.total_seconds())}"

    def ensure_bucket(self, bucket):
        return False

    def keys(self, bucket=None):
        return sorted(k for b, k in self.objects if bucket is None or b == bucket)


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def blob_store(monkeypatch) -> InMemoryBlobStore:
    """
    Replace the MinIO-backed store everywhere it is looked up.

    Every module imports ``get_blob_store`` by name, so each import site
    is patched.
    """
    store = InMemoryBlobStore()
    for target in (
        "files.services.get_blob_store",
        "accounts.services.get_blob_store",
        "reports.serializers.get_blob_store",
    ):
        monkeypatch.setattr(target, lambda: store)
    return store


@pytest.fixture()
def create_role(db):
    """Factory fixture: ``create_role("Roads Officer")``."""
    from accounts.models import Role

    def _factory(name: str, **kwargs) -> Role:
        role, _ = Role.objects.get_or_create(name=name, defaults=kwargs)
        return role

    return _factory


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user, create_role):
            officer = create_user(role=create_role("Roads Officer"))
            idle = create_user(username="bob", is_active=False)
    """
    from accounts.models import User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        role=None,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"

        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            role=role,
            is_active=is_active,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def create_citizen(create_user):
    """Factory fixture returning a ``Citizen`` with its own user."""
    from accounts.models import Citizen

    def _factory(**user_kwargs) -> Citizen:
        return Citizen.objects.create(user=create_user(**user_kwargs))

    return _factory


@pytest.fixture()
def create_category(db, create_role):
    """
    Factory fixture for a ``Category``, optionally mapped to a role.

    ``create_category("Roads", role_name="Roads Officer")``
    """
    from reports.models import Category, CategoryRole

    def _factory(name: str, *, role_name: str | None = None) -> Category:
        category = Category.objects.create(name=name)
        if role_name is not None:
            CategoryRole.objects.create(category=category, role=create_role(role_name))
        return category

    return _factory


@pytest.fixture()
def stage_photo(db, blob_store):
    """Stage a small PNG and return its ``StagedFile`` record."""
    from files.services import FileStagingService

    def _stage(filename: str = "photo.png", category: str = "report"):
        return FileStagingService.stage_upload(
            PNG_BYTES, filename, "image/png", len(PNG_BYTES), category,
        )

    return _stage
