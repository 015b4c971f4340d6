from __future__ import annotations

import pytest

from avd_portal.app_factory import build_session
from avd_portal.tests.fakes import FakeAssessmentApi, ManualScheduler, make_settings


@pytest.fixture
def api() -> FakeAssessmentApi:
    return FakeAssessmentApi()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def session(api, scheduler):
    return build_session(make_settings(), api=api, scheduler=scheduler)


@pytest.fixture
def ready_session(session):
    """Session with a tenant and one subscription selected, i.e. submittable."""
    session.update_inputs(tenantId="tenant-1")
    session.toggle_subscription("sub-a")
    return session
