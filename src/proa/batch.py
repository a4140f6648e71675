# pyright: strict
import logging
from collections.abc import Callable
from concurrent.futures import Executor, ProcessPoolExecutor, as_completed
from functools import lru_cache
from typing import Any

import cloudpickle  # type: ignore
from tqdm.auto import tqdm

from proa.simulation_framework import SimulationImpl, SimulationRecorder

logger = logging.getLogger(__name__)


def run_batch_simulation[T: SimulationImpl](
    impl: T,
    recorder: SimulationRecorder[T],
    *,
    time: float | None = None,
    steps: int | None = None,
) -> None:
    if time is None and steps is None:
        raise ValueError("attempted to run simulation with no stopping condition")

    current_step = 0
    current_state = impl

    while (time is None or current_state.time <= time) and (
        steps is None or current_step < steps
    ):
        recorder.record(current_state)
        current_step += 1
        current_state.step()


@lru_cache(maxsize=32)
def _unpickle(payload: bytes) -> Any:
    return cloudpickle.loads(payload)  # pyright: ignore[reportUnknownMemberType]


class _Cloudpickled[**A, R]:
    """A callable that survives regular pickle.

    Multiprocessing uses regular pickle, which can't ship closures or functions defined in a notebook.
    The payload is unpickled once per worker process and reused for every task.
    """

    def __init__(self, fn: Callable[A, R]):
        self._fn = fn
        self._payload: bytes = cloudpickle.dumps(fn)  # pyright: ignore[reportUnknownMemberType]

    def __getstate__(self) -> bytes:
        return self._payload

    def __setstate__(self, payload: bytes):
        self._payload = payload
        self._fn = _unpickle(payload)

    def __call__(self, *args: A.args, **kwargs: A.kwargs) -> R:
        return self._fn(*args, **kwargs)


def run_multiprocess_simulations[CorrelationId, *A, R](
    *,
    fn: Callable[[*A], R],
    args: dict[CorrelationId, tuple[*A]],
    executor_factory: Callable[[], Executor] = ProcessPoolExecutor,
) -> dict[CorrelationId, R]:
    """Calls `fn` once per entry of `args` in a worker pool.

    Returns the results under the same keys as their arguments.
    """
    fn_cp = _Cloudpickled(fn)
    ret: dict[CorrelationId, R] = {}
    logger.info("running %d simulations", len(args))

    with (
        executor_factory() as executor,
        tqdm(total=len(args), smoothing=0) as progress,
    ):
        futures = {executor.submit(fn_cp, *args_): c for c, args_ in args.items()}
        for future in as_completed(futures):
            ret[futures[future]] = future.result()
            progress.update()

    return ret
