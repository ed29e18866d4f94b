"""
Classifier loader: backend modules are imported on first use, so listing or
testing one backend does not pull in every backend's runtime.
Each module exposes a 'Classifier' class.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

from core.errors import InvalidArgument

if TYPE_CHECKING:
    from classifiers.base import ClassifierBase

# Backend id -> module under classifiers/
_BUILTIN_CLASSIFIERS = {
    "mediapipe": "classifiers.mediapipe_classifier",
}


def _load_class(classifier_id: str) -> type[ClassifierBase]:
    try:
        module_name = _BUILTIN_CLASSIFIERS[classifier_id]
    except KeyError:
        raise InvalidArgument(
            f"Unknown classifier: {classifier_id!r}. Known: {sorted(_BUILTIN_CLASSIFIERS)}"
        ) from None
    module = importlib.import_module(module_name)
    return getattr(module, "Classifier")


def get_classifier(classifier_id: str) -> ClassifierBase:
    """Fresh, not yet initialized instance of the given backend."""
    return _load_class(classifier_id)()


def available_classifiers() -> list[ClassifierBase]:
    """One fresh instance of every built-in backend."""
    return [get_classifier(cid) for cid in _BUILTIN_CLASSIFIERS]
