# SPDX-License-Identifier: Apache-2.0
"""Interactive contour and landmark capture."""

from .capture import (  # noqa: F401
    AnnotationCapture,
    AnnotationSet,
    CameraLock,
    CaptureMode,
    CaptureState,
    KeyEvent,
    PointerEvent,
)
from .overlay import OverlayLayer  # noqa: F401
