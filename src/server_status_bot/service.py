import logging

from server_status_bot.engine import ReconciliationEngine
from server_status_bot.models import FetchFailure, ServerSnapshot
from server_status_bot.reporting import ErrorReporter
from server_status_bot.transport import TransportFatal


class StatusService:
    """
    Long-lived owner of the reconciliation engine and its session state.

    Runs one cycle at a time and routes problems to the error reporter.
    """

    def __init__(self, engine: ReconciliationEngine, reporter: ErrorReporter):
        self.engine = engine
        self.reporter = reporter
        self.logger = logging.getLogger(__name__)

    async def cycle(self) -> ServerSnapshot | FetchFailure | None:
        was_online = self.engine.state.is_online
        try:
            outcome = await self.engine.run_cycle()
        except TransportFatal as e:
            self.logger.error("Status cycle aborted, state left unchanged", exc_info=e)
            await self.reporter.report("Status update failed", str(e))
            return None

        if outcome is None:
            return None

        if isinstance(outcome, FetchFailure):
            if was_online:
                await self.reporter.report("Server unreachable", outcome.reason)
        else:
            self.reporter.resolve()
        return outcome
