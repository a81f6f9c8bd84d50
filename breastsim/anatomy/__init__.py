# SPDX-License-Identifier: Apache-2.0
from .models import AnatomySet, Contour, Landmark, Region, Side, SideAnatomy  # noqa: F401
