"""PyQtGraph surface for one scrolling waveform, with an off-trace placeholder."""

from __future__ import annotations

from typing import Optional

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QStackedLayout, QVBoxLayout, QWidget

from ..config.channels import ChannelSpec

BACKGROUND = "#0a0e1a"
GRID_PEN = (255, 255, 255, 13)
HORIZONTAL_GRID_LINES = 5
VERTICAL_GRID_LINES = 6
LINE_WIDTH = 2.0

NO_SENSOR_TEXT = "No sensor"
HIDDEN_TEXT = "Hidden"


class PlotSurface:
    """Pixel-sized drawing surface backed by a pyqtgraph view box."""

    def __init__(self, view: pg.ViewBox, curve: pg.PlotDataItem, color: str) -> None:
        self._view = view
        self._curve = curve
        self._color = color

    @property
    def width(self) -> float:
        return max(1.0, float(self._view.width()))

    @property
    def height(self) -> float:
        return max(1.0, float(self._view.height()))

    @property
    def color(self) -> str:
        return self._color

    def draw_path(self, xs: np.ndarray, ys: np.ndarray, color: str) -> None:
        if color != self._color:
            self._curve.setPen(pg.mkPen(color, width=LINE_WIDTH))
            self._color = color
        if xs.size == 0:
            self._curve.setData([], [])
            return
        self._curve.setData(xs, ys)

class WaveformView(QWidget):
    """
    Draw a pre-mapped polyline in pixel coordinates.

    The view box is kept at ``(0, 0)-(width, height)`` of its own pixel size
    with Y pointing down, so coordinates produced by
    :func:`~vitalscope.gui.renderer.compute_waveform_path` land exactly where
    a 2D canvas would put them. Anything outside is clipped by the view.
    """

    def __init__(self, spec: ChannelSpec, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._spec = spec

        self._title = QLabel(self._title_text(), self)
        self._title.setStyleSheet(f"color: {spec.color}; font-weight: bold;")

        self._plot = pg.PlotWidget(self, background=BACKGROUND)
        self._plot.setMenuEnabled(False)
        self._plot.hideButtons()
        self._plot.hideAxis("left")
        self._plot.hideAxis("bottom")
        self._view = self._plot.getViewBox()
        self._view.setMouseEnabled(x=False, y=False)
        self._view.invertY(True)
        self._view.enableAutoRange(enable=False)
        self._view.sigResized.connect(self._on_resized)

        self._grid: list[pg.InfiniteLine] = []
        grid_pen = pg.mkPen(GRID_PEN, width=1)
        for _ in range(HORIZONTAL_GRID_LINES + 1):
            line = pg.InfiniteLine(angle=0, pen=grid_pen, movable=False)
            self._plot.addItem(line)
            self._grid.append(line)
        for _ in range(VERTICAL_GRID_LINES + 1):
            line = pg.InfiniteLine(angle=90, pen=grid_pen, movable=False)
            self._plot.addItem(line)
            self._grid.append(line)

        self._curve = self._plot.plot(
            [],
            [],
            pen=pg.mkPen(spec.color, width=LINE_WIDTH),
        )
        self._surface = PlotSurface(self._view, self._curve, spec.color)

        self._placeholder = QLabel(NO_SENSOR_TEXT, self)
        self._placeholder.setAlignment(Qt.AlignCenter)
        self._placeholder.setStyleSheet(
            f"background: {BACKGROUND}; color: #6b7280; font-size: 16px;"
        )

        self._stack = QStackedLayout()
        self._stack.addWidget(self._plot)
        self._stack.addWidget(self._placeholder)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(2)
        layout.addWidget(self._title)
        layout.addLayout(self._stack)

        self._on_resized()

    def _title_text(self) -> str:
        spec = self._spec
        return f"{spec.label} [{spec.units}]" if spec.units else spec.label

    @property
    def surface(self) -> PlotSurface:
        """The object handed to :class:`~vitalscope.gui.renderer.WaveformRenderer`."""
        return self._surface

    def set_channel_state(self, visible: bool, attached: bool) -> None:
        """
        Show the trace while visible, the placeholder otherwise.

        The placeholder reads "No sensor" when the sensor is detached and
        "Hidden" when the user switched an attached channel off.
        """
        if visible:
            self._stack.setCurrentWidget(self._plot)
            return
        self._placeholder.setText(NO_SENSOR_TEXT if not attached else HIDDEN_TEXT)
        self._stack.setCurrentWidget(self._placeholder)
        self._curve.setData([], [])

    @property
    def showing_placeholder(self) -> bool:
        return self._stack.currentWidget() is self._placeholder

    def placeholder_text(self) -> str:
        return self._placeholder.text()

    def curve_point_count(self) -> int:
        xs, _ = self._curve.getData()
        return 0 if xs is None else len(xs)

    def clear(self) -> None:
        self._curve.setData([], [])

    def _on_resized(self, *_args) -> None:
        w, h = self._surface.width, self._surface.height
        self._view.setRange(xRange=(0.0, w), yRange=(0.0, h), padding=0.0)
        for idx in range(HORIZONTAL_GRID_LINES + 1):
            self._grid[idx].setValue(h * idx / HORIZONTAL_GRID_LINES)
        offset = HORIZONTAL_GRID_LINES + 1
        for idx in range(VERTICAL_GRID_LINES + 1):
            self._grid[offset + idx].setValue(w * idx / VERTICAL_GRID_LINES)
