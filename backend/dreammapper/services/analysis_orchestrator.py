"""
Dream analysis pipeline: inference (required) and moon lookup (best-effort)
joined into one persisted record.
"""
import asyncio
import threading
import time
from typing import Callable, Dict, Optional

from dreammapper.core.errors import (DreamAnalysisError, InferenceUnavailable,
                                     PersistenceError, SubmissionInProgress,
                                     ValidationError)
from dreammapper.core.logging_config import LoggingConfig
from dreammapper.core.metrics import (dream_analyses_total,
                                     dream_analysis_duration_seconds)
from dreammapper.core.moon_client import MoonPhaseClient, get_moon_client
from dreammapper.core.ollama_client import OllamaClient, get_ollama_client
from dreammapper.models.analysis_types import (AnalysisRequest, BuiltPrompt,
                                               CompletedDreamRecord,
                                               MoonPhaseReading,
                                               SubmissionState,
                                               ValidatedAnalysis)
from dreammapper.services.dream_store import DreamStore, get_dream_store
from dreammapper.services.prompt_builder import build_prompt
from dreammapper.services.response_validator import validate_analysis
from dreammapper.utils.datetime_utils import utc_now

logger = LoggingConfig.get_logger(__name__)


class AnalysisOrchestrator:
    """
    Runs one submission through the pipeline.

    Per session: Idle -> Submitting -> Completed | Failed. A second submit
    while the session is Submitting is rejected with SubmissionInProgress.
    Only in-flight sessions are held in memory; a finished session reads
    as Idle again. Submissions without a session id are independent of
    each other.
    """

    def __init__(
        self,
        inference: Optional[OllamaClient] = None,
        moon: Optional[MoonPhaseClient] = None,
        store: Optional[DreamStore] = None,
        clock: Callable = utc_now,
    ):
        self.inference = inference or get_ollama_client()
        self.moon = moon or get_moon_client()
        self.store = store or get_dream_store()
        self._clock = clock
        self._states: Dict[str, SubmissionState] = {}
        # Guards check-and-set on _states; never held across an await
        self._state_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    def state(self, session_id: str) -> SubmissionState:
        with self._state_lock:
            return self._states.get(session_id, SubmissionState.IDLE)

    def _begin(self, session_id: Optional[str]):
        if session_id is None:
            return
        with self._state_lock:
            if self._states.get(session_id) == SubmissionState.SUBMITTING:
                raise SubmissionInProgress(
                    "A dream is already being analyzed for this session",
                    metadata={"session_id": session_id},
                )
            self._states[session_id] = SubmissionState.SUBMITTING

    def _finish(self, session_id: Optional[str], state: SubmissionState):
        """Release the session; only in-flight sessions are tracked"""
        if session_id is None:
            return
        with self._state_lock:
            self._states.pop(session_id, None)
        logger.debug("Submission finished", extra={"session_id": session_id, "state": state.value})

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def _required_branch(self, prompt: BuiltPrompt) -> ValidatedAnalysis:
        """Inference then validation; any failure propagates"""
        try:
            response = await asyncio.wait_for(self.inference.chat(prompt), timeout=self.inference.timeout)
        except asyncio.TimeoutError as e:
            raise InferenceUnavailable(f"Inference did not finish within {self.inference.timeout}s") from e
        return validate_analysis(response.content)

    async def _best_effort_branch(self, request: AnalysisRequest) -> MoonPhaseReading:
        """Moon lookup; degrades to the sentinel reading instead of failing"""
        try:
            return await asyncio.wait_for(
                self.moon.fetch_reading(request.date, request.location_id),
                timeout=self.moon.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Moon phase lookup exceeded its deadline, using sentinel")
            return MoonPhaseReading()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def analyze(self, request: AnalysisRequest) -> CompletedDreamRecord:
        """
        Run both branches concurrently and merge them, without persisting.

        Raises:
            ValidationError: text too short (no network call is made)
            InferenceUnavailable: the generation service failed
            MalformedInferenceOutput: the model output could not be validated
        """
        prompt = build_prompt(request.title, request.text)

        required = asyncio.create_task(self._required_branch(prompt))
        best_effort = asyncio.create_task(self._best_effort_branch(request))
        try:
            analysis = await required
        except BaseException:
            # The moon reading is useless without an analysis
            best_effort.cancel()
            await asyncio.gather(best_effort, return_exceptions=True)
            raise

        try:
            moon = await best_effort
        except Exception as e:
            logger.error("Moon branch raised unexpectedly, using sentinel", exc_info=e)
            moon = MoonPhaseReading()

        return CompletedDreamRecord.merge(request, analysis, moon, created_at=self._clock())

    async def submit(self, request: AnalysisRequest, session_id: Optional[str] = None) -> CompletedDreamRecord:
        """
        Analyze a dream and hand the result to the store.

        Raises:
            SubmissionInProgress: the session already has a submission in flight
            ValidationError, InferenceUnavailable, MalformedInferenceOutput:
                pipeline failure; nothing is persisted
            PersistenceError: analysis succeeded but was not stored
        """
        self._begin(session_id)
        start_time = time.time()
        outcome = "failed"
        try:
            record = await self.analyze(request)
            saved = await asyncio.to_thread(self.store.save, record)
            outcome = "completed"
            self._finish(session_id, SubmissionState.COMPLETED)
            logger.info(
                "Dream analysis completed",
                extra={
                    "dream_id": str(saved.id),
                    "sentiment": saved.sentiment,
                    "moon_phase": saved.moon_phase,
                    "motif_count": len(saved.motifs),
                }
            )
            return saved
        except ValidationError:
            outcome = "rejected"
            self._finish(session_id, SubmissionState.FAILED)
            raise
        except PersistenceError:
            outcome = "not_saved"
            self._finish(session_id, SubmissionState.FAILED)
            raise
        except DreamAnalysisError as e:
            logger.warning(f"Dream analysis failed: {e.code}", extra={"error": e.message})
            self._finish(session_id, SubmissionState.FAILED)
            raise
        except BaseException:
            self._finish(session_id, SubmissionState.FAILED)
            raise
        finally:
            dream_analyses_total.labels(outcome=outcome).inc()
            dream_analysis_duration_seconds.observe(time.time() - start_time)


# Global orchestrator instance
_orchestrator: Optional[AnalysisOrchestrator] = None


def get_analysis_orchestrator() -> AnalysisOrchestrator:
    """Get global orchestrator instance"""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AnalysisOrchestrator()
    return _orchestrator
