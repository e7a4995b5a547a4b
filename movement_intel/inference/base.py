"""InferenceSubsystem — optional external scoring model.

A model receives the raw feature vector (``FeatureVector.as_list()``)
and returns a single float.  The RiskScorer clamps the result and falls
back to its heuristic when the model is absent, fails or times out.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class InferenceSubsystem(Protocol):
    def score(self, features: list[float]) -> float:
        ...


ModelLoader = Callable[[], InferenceSubsystem]


class LazyInference:
    """Loads an inference model at most once, on first use.

    Thread-safety contract:
        - Loading is guarded by a lock; concurrent first calls block until
          the single load completes and then share the loaded handle.
        - A failed load is not cached; the next call retries.
        - With ``thread_safe=False`` every ``score`` call is serialised
          through a mutex.  Otherwise scoring takes no lock.
    """

    def __init__(self, loader: ModelLoader, thread_safe: bool = True) -> None:
        self._loader = loader
        self._thread_safe = thread_safe
        self._model: InferenceSubsystem | None = None
        self._load_lock = threading.Lock()
        self._score_lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def warm_up(self) -> None:
        """Load the model eagerly, e.g. as an explicit startup step."""
        self._get_model()

    def score(self, features: list[float]) -> float:
        model = self._get_model()
        if self._thread_safe:
            return model.score(features)
        with self._score_lock:
            return model.score(features)

    def _get_model(self) -> InferenceSubsystem:
        model = self._model
        if model is not None:
            return model
        with self._load_lock:
            if self._model is None:
                logger.info("Loading inference model")
                self._model = self._loader()
            return self._model
