import secrets
import string
import typing as t
from datetime import datetime, time, timedelta

import faker
import pytest
from django.core.cache import cache
from django.utils import timezone

from accounts.models import RollcallUser


@pytest.fixture(autouse=True)
def clear_throttle_cache() -> None:
    """Throttle history lives in the cache; start each test from a clean slate."""
    cache.clear()


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously.

    This ensures that Celery tasks run immediately in the same process,
    allowing tests to verify their side effects without async complications.
    """
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class RollcallUserFactory:
    """Factory for creating RollcallUser instances for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> RollcallUser:
        username = kwargs.pop(
            "username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(8)) + "@user.test"
        )
        email = kwargs.pop("email", username + ("@test.com" if "@" not in username else ""))
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        preferred_name = kwargs.pop("preferred_name", f"{first_name} {last_name}")
        return RollcallUser.objects.create_user(
            username=username,
            email=email,
            password=password,
            preferred_name=preferred_name,
            first_name=first_name,
            last_name=last_name,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> RollcallUser:
        return self.create_user(**kwargs)


@pytest.fixture
def rollcall_user_factory() -> RollcallUserFactory:
    return RollcallUserFactory()


@pytest.fixture
def user(rollcall_user_factory: RollcallUserFactory) -> RollcallUser:
    return rollcall_user_factory()


@pytest.fixture
def superuser(rollcall_user_factory: RollcallUserFactory) -> RollcallUser:
    """A superuser."""
    return rollcall_user_factory(is_superuser=True, is_staff=True)


@pytest.fixture
def next_week() -> datetime:
    today = timezone.now()
    same_time_next_week = today + timedelta(days=7)
    noon = time(hour=12, minute=0)
    return timezone.make_aware(
        datetime.combine(same_time_next_week.date(), noon),
        timezone.get_current_timezone(),
    )
