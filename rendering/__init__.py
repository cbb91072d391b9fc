"""Rendering surfaces for the signage player."""

from .layer_surface import LAYER_COUNT, LayerSurface
from .signage_window import LayerWidget, QtLayerSurface, SignageWindow

__all__ = ['LAYER_COUNT', 'LayerSurface', 'LayerWidget', 'QtLayerSurface', 'SignageWindow']
