from avd_portal.app_factory import create_app

if __name__ == "__main__":
    app = create_app()
    # The reloader would start a second process with its own poll timer
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"], use_reloader=False)

#############################
#
# Key design patterns used
# •	Application Factory: create_app() builds the app; build_session() wires the lifecycle manager.
# •	Dependency Injection (manual): api client, scheduler, registry are passed into constructors.
# •	Service Layer: RunSession encapsulates the submit / poll / open / delete use cases.
# •	Repository: RunRegistry encapsulates run history held by the backend.
# •	Strategy: Scheduler lets the poller run on threads or on a manual clock (tests).
# •	State machine: StatusPoller owns the single active-run slot.
######################################################################
# Runtime flow
# •	POST /portal/assess -> RunSession.submit -> RunSubmitter -> StatusPoller.start
# •	every 3s: StatusPoller tick -> GET /api/assess/<runId> on the backend
# •	completed -> one GET /api/results/<runId>, then status + manifest published together
# •	POST /portal/runs/<id>/open -> manifest fetch -> completed, no polling
# •	DELETE /portal/runs/<id>?confirm=yes -> backend delete -> clear slot if active -> refresh history
