# jan_lookup/pipeline/resolver.py
import logging
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from ..models import (
    FailureReason,
    HarnessError,
    HarnessPolicy,
    ProductRecord,
    ResolveResult,
    SessionOutcome,
)
from ..utils.codes import chunk_codes, normalize_codes

logger = logging.getLogger(__name__)


class ProductStore(Protocol):
    """The local store the resolver consults before going to the AI page."""

    def get(self, code: str) -> Optional[ProductRecord]: ...

    def put(self, record: ProductRecord): ...


class Session(Protocol):
    async def run(self) -> SessionOutcome: ...

    def close(self): ...


SessionFactory = Callable[[List[str], str], Session]


class ProductResolver:
    """
    resolve(codes): cache-before-network lookup of product master data.

    Codes already in the store never reach the AI page. The rest are split into
    batches, and each batch runs as one complete session; sessions run strictly
    one after another. The result holds exactly one record per requested code,
    in request order: codes that could not be resolved get an "unknown"
    placeholder plus an entry in ``failures``. The resolver never writes to the store.
    """
    def __init__(self, store: ProductStore, session_factory: SessionFactory, policy: Optional[HarnessPolicy] = None):
        self.store = store
        self.session_factory = session_factory
        self.policy = policy or HarnessPolicy.from_config()

    async def resolve(self, codes: Iterable[str]) -> ResolveResult:
        requested = normalize_codes(codes)
        result = ResolveResult()
        resolved: Dict[str, ProductRecord] = {}

        missing: List[str] = []
        for code in requested:
            cached = self.store.get(code)
            if cached is not None:
                logger.debug("Store hit: %s (%s)", code, cached.name)
                resolved[code] = cached
                result.from_store.append(code)
            else:
                missing.append(code)
        logger.info("%d code(s) requested: %d from the local store, %d to look up.", len(requested), len(result.from_store), len(missing))

        batches = chunk_codes(missing, self.policy.max_batch_size)
        for index, batch in enumerate(batches, start=1):
            label = f"batch {index}/{len(batches)}"
            logger.info("--- SESSION %s: %d code(s) ---", label.upper(), len(batch))
            outcome = await self._run_session(batch, label)
            self._collect(batch, outcome, resolved, result.failures)

        result.records = [resolved.get(code) or ProductRecord.unknown(code) for code in requested]
        logger.info("Resolve finished: %d succeeded, %d failed.", result.succeeded, result.failed)
        return result

    async def _run_session(self, batch: List[str], label: str) -> SessionOutcome:
        session = self.session_factory(batch, label)
        try:
            return await session.run()
        finally:
            session.close()

    @staticmethod
    def _collect(
        batch: Sequence[str],
        outcome: SessionOutcome,
        resolved: Dict[str, ProductRecord],
        failures: Dict[str, HarnessError],
    ):
        if outcome.failure is not None:
            logger.warning("Batch of %d code(s) failed: %s", len(batch), outcome.failure.message)
            for code in batch:
                failures[code] = outcome.failure
            return

        by_code = {record.code: record for record in outcome.records}
        for code in batch:
            if code in by_code:
                resolved[code] = by_code[code]
            else:
                logger.warning("The AI response has no entry for %s.", code)
                failures[code] = HarnessError(
                    f"no entry for {code} in the AI response",
                    reason=FailureReason.MISSING_FROM_RESPONSE,
                    context={"code": code},
                )
