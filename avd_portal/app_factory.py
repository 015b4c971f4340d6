from __future__ import annotations

import atexit
from typing import Optional

from flask import Flask

from avd_portal.adapters.assessment_api import AssessmentApiClient
from avd_portal.config.ini_config import AppSettings, IniConfig
from avd_portal.logging_setup import setup_logging
from avd_portal.repositories.run_registry import RunRegistry
from avd_portal.services.manifest_loader import ResultManifestLoader
from avd_portal.services.run_session import RunSession
from avd_portal.services.run_submitter import RunSubmitter
from avd_portal.services.scheduler import Scheduler, ThreadingScheduler
from avd_portal.services.status_poller import StatusPoller
from avd_portal.web.routes import create_blueprint


def build_session(settings: AppSettings, api=None, scheduler: Optional[Scheduler] = None) -> RunSession:
    """Composition root for the run lifecycle manager; usable without Flask."""
    api = api or AssessmentApiClient(settings.api_base_url, timeout_seconds=settings.request_timeout_seconds)
    manifest_loader = ResultManifestLoader(api=api)

    poller = StatusPoller(
        api=api,
        manifest_loader=manifest_loader,
        scheduler=scheduler or ThreadingScheduler(),
        interval_seconds=settings.poll_interval_seconds,
    )

    return RunSession(
        api=api,
        poller=poller,
        registry=RunRegistry(api),
        submitter=RunSubmitter(api=api),
        manifest_loader=manifest_loader,
        default_lookback_days=settings.default_lookback_days,
    )


def create_app(session: Optional[RunSession] = None, settings: Optional[AppSettings] = None) -> Flask:
    if settings is None:
        settings = IniConfig.from_env_or_default().load_settings()
    setup_logging(settings.log_level)

    if session is None:
        session = build_session(settings)
        session.initialize()
    atexit.register(session.shutdown)

    app = Flask(__name__)
    app.register_blueprint(create_blueprint(session), url_prefix="/portal")
    app.extensions["avd_session"] = session

    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug

    return app
