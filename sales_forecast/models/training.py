"""
Training orchestration for sequence regressors.

train_regressor() is the blocking entry point. TrainingSession runs the same
call on a background worker and exposes per-epoch progress through a bounded
queue, so an observer can follow training without ever stalling it.
"""

import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterator, Optional

from ..data.windowing import TrainingDataset
from ..errors import TrainingCancelled, TrainingFailure
from .base import BaseSequenceRegressor, CancellationToken, ProgressCallback, TrainingProgress

logger = logging.getLogger(__name__)

_DONE = object()


def train_regressor(
    regressor: BaseSequenceRegressor,
    dataset: TrainingDataset,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None
) -> BaseSequenceRegressor:
    """
    Fit a regressor on a training dataset.

    Parameters
    ----------
    regressor : BaseSequenceRegressor
        Untrained regressor.
    dataset : TrainingDataset
        Windowed training data.
    progress_callback : callable, optional
        Receives a TrainingProgress per epoch.
    cancel_token : CancellationToken, optional
        Lets the caller abandon training.

    Returns
    -------
    BaseSequenceRegressor
        The fitted regressor.

    Raises
    ------
    TrainingCancelled
        If the token was set during training.
    TrainingFailure
        If the regressor raised anything else. The regressor must be discarded.
    """
    logger.info(f"Training {regressor.__class__.__name__} on {dataset.summary()}")
    try:
        fitted = regressor.fit(
            dataset.inputs,
            dataset.targets,
            progress_callback=progress_callback,
            cancel_token=cancel_token
        )
    except TrainingCancelled:
        logger.warning("Training cancelled")
        raise
    except Exception as exc:
        raise TrainingFailure(f"{regressor.__class__.__name__} failed to train: {exc}") from exc

    if fitted is None:
        fitted = regressor
    if not fitted.is_fitted:
        raise TrainingFailure(f"{regressor.__class__.__name__} returned without being fitted")

    if fitted.training_losses:
        logger.info(f"Training complete, final loss: {fitted.training_losses[-1]:.4f}")
    return fitted


class TrainingSession:
    """
    Background training with a progress stream and cancellation.

    Examples
    --------
    >>> with TrainingSession(LSTMRegressor(epochs=50), dataset) as session:
    ...     for event in session.progress():
    ...         print(event.epoch, event.loss)
    ...     model = session.result()
    """

    def __init__(
        self,
        regressor: BaseSequenceRegressor,
        dataset: TrainingDataset,
        max_pending: int = 32,
        cancel_token: Optional[CancellationToken] = None
    ):
        self.regressor = regressor
        self.dataset = dataset
        self.cancel_token = cancel_token or CancellationToken()
        self._events: "queue.Queue" = queue.Queue(maxsize=max_pending)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._future: Optional[Future] = None

    def _publish(self, item):
        # Drop the oldest event rather than block the training thread
        while True:
            try:
                self._events.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._events.get_nowait()
                except queue.Empty:
                    pass

    def _run(self) -> BaseSequenceRegressor:
        try:
            return train_regressor(
                self.regressor,
                self.dataset,
                progress_callback=self._publish,
                cancel_token=self.cancel_token
            )
        finally:
            self._publish(_DONE)

    def start(self) -> "TrainingSession":
        if self._future is not None:
            raise RuntimeError("Training session already started")
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="training")
        self._future = self._executor.submit(self._run)
        return self

    def progress(self, timeout: Optional[float] = None) -> Iterator[TrainingProgress]:
        """
        Yield progress events until training finishes.

        Parameters
        ----------
        timeout : float, optional
            Maximum seconds to wait for each event. queue.Empty is raised
            if no event arrives in time; training keeps running.
        """
        if self._future is None:
            raise RuntimeError("Training session not started")
        while True:
            item = self._events.get(timeout=timeout)
            if item is _DONE:
                return
            yield item

    def cancel(self):
        self.cancel_token.cancel()

    @property
    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def result(self, timeout: Optional[float] = None) -> BaseSequenceRegressor:
        """Wait for training and return the fitted regressor, or re-raise its error."""
        if self._future is None:
            raise RuntimeError("Training session not started")
        return self._future.result(timeout=timeout)

    def close(self):
        if self._executor is not None:
            if not self.done:
                self.cancel()
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "TrainingSession":
        if self._future is None:
            self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
