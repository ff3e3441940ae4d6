"""Main window for the VitalScope monitor."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, Optional

from PySide6.QtCore import QTimer, Slot
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QCheckBox,
    QFileDialog,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..analysis.vitals import VitalReading, VitalStatus, VitalsReport
from ..config.channels import ChannelId
from ..core.session import MonitorSession
from ..dataio.export import build_export, default_export_name, write_export
from ..remote.stream_client import ConnectionState, StreamClient
from .renderer import WaveformRenderer
from .waveform_view import WaveformView

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    ConnectionState.CONNECTED: "#10b981",
    ConnectionState.CONNECTING: "#f59e0b",
    ConnectionState.DISCONNECTED: "#ef4444",
}

VITAL_STATUS_COLORS = {
    VitalStatus.NORMAL: "#10b981",
    VitalStatus.WARNING: "#f59e0b",
    VitalStatus.CRITICAL: "#ef4444",
    VitalStatus.NO_SENSOR: "#6b7280",
}


def _format_duration(seconds: int) -> str:
    hours, rem = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class VitalCard(QFrame):
    """Single numeric readout with a status line underneath."""

    def __init__(self, title: str, units: str, decimals: int = 0, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._decimals = decimals
        self.setFrameShape(QFrame.StyledPanel)

        self._title = QLabel(f"{title} ({units})" if units else title, self)
        self._value = QLabel("--", self)
        self._value.setStyleSheet("font-size: 24px; font-weight: bold;")
        self._status = QLabel(VitalStatus.NO_SENSOR.value, self)

        layout = QVBoxLayout(self)
        layout.addWidget(self._title)
        layout.addWidget(self._value)
        layout.addWidget(self._status)
        self.set_status(VitalStatus.NO_SENSOR)

    def value_text(self) -> str:
        return self._value.text()

    def status_text(self) -> str:
        return self._status.text()

    def set_text(self, text: str, status: VitalStatus) -> None:
        self._value.setText(text)
        self.set_status(status)

    def set_reading(self, reading: VitalReading) -> None:
        if reading.value is None:
            self.set_text("--", VitalStatus.NO_SENSOR)
        else:
            self.set_text(f"{reading.value:.{self._decimals}f}", reading.status)

    def set_status(self, status: VitalStatus) -> None:
        self._status.setText(status.value)
        self._status.setStyleSheet(f"color: {VITAL_STATUS_COLORS[status]};")


class MonitorWindow(QMainWindow):
    """
    Live monitor: connection indicator, vital cards and four waveforms.

    The window owns no state of its own beyond widgets; data lives in the
    :class:`MonitorSession`, the connection in the :class:`StreamClient`.
    Repaints are driven by a display-rate timer independent of data arrival.
    """

    def __init__(
        self,
        session: MonitorSession,
        client: StreamClient,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("VitalScope")

        self._session = session
        self._client = client
        self._connected_since: Optional[float] = None

        self._build_ui()

        self._renderer = WaveformRenderer(
            session.channels,
            session.buffer,
            {cid: view.surface for cid, view in self._views.items()},
            window_seconds=session.config.window_seconds,
        )

        client.state_changed.connect(self._on_state_changed)
        client.envelope_processed.connect(self._on_envelope_processed)
        self._on_state_changed(client.state)

        self._repaint_timer = QTimer(self)
        self._repaint_timer.setInterval(session.config.paint_interval_ms)
        self._repaint_timer.timeout.connect(self._on_repaint)
        self._repaint_timer.start()

        self._session_timer = QTimer(self)
        self._session_timer.setInterval(1000)
        self._session_timer.timeout.connect(self._update_footer)
        self._session_timer.start()
        self._update_footer()

    # ------------------------------------------------------------------ build
    def _build_ui(self) -> None:
        central = QWidget(self)
        root = QVBoxLayout(central)

        header = QHBoxLayout()
        self._status_dot = QLabel("●", central)
        self._status_label = QLabel(ConnectionState.DISCONNECTED.value, central)
        self._session_label = QLabel("Session 00:00:00", central)
        self._export_button = QPushButton(self.tr("Export"), central)
        self._export_button.clicked.connect(self._on_export_clicked)
        header.addWidget(self._status_dot)
        header.addWidget(self._status_label)
        header.addStretch(1)
        header.addWidget(self._session_label)
        header.addWidget(self._export_button)
        root.addLayout(header)

        cards = QHBoxLayout()
        self._cards: Dict[str, VitalCard] = {
            "hr": VitalCard("Heart Rate", "bpm"),
            "spo2": VitalCard("SpO2", "%"),
            "resp": VitalCard("Resp Rate", "/min"),
            "bp": VitalCard("NIBP", "mmHg"),
            "temp_core": VitalCard("Core Temp", "°C", decimals=1),
            "temp_skin": VitalCard("Skin Temp", "°C", decimals=1),
        }
        for card in self._cards.values():
            cards.addWidget(card)
        root.addLayout(cards)

        toggles = QHBoxLayout()
        grid = QGridLayout()
        self._views: Dict[ChannelId, WaveformView] = {}
        self._toggles: Dict[ChannelId, QCheckBox] = {}
        for row, (cid, channel) in enumerate(self._session.channels.items()):
            view = WaveformView(channel.spec, central)
            view.set_channel_state(channel.visible, channel.attached)
            self._views[cid] = view
            grid.addWidget(view, row, 0)

            check = QCheckBox(channel.spec.label, central)
            check.setChecked(channel.manual_enabled)
            check.toggled.connect(
                lambda checked, cid=cid: self._on_channel_toggled(cid, checked)
            )
            self._toggles[cid] = check
            toggles.addWidget(check)
        toggles.addStretch(1)
        root.addLayout(toggles)
        root.addLayout(grid, 1)

        footer = QHBoxLayout()
        self._runtime_label = QLabel(central)
        self._rate_label = QLabel(central)
        self._points_label = QLabel(central)
        self._fps_label = QLabel(central)
        for label in (self._runtime_label, self._rate_label, self._points_label, self._fps_label):
            footer.addWidget(label)
        footer.addStretch(1)
        root.addLayout(footer)

        self.setCentralWidget(central)

    # ---------------------------------------------------------------- updates
    @Slot(object)
    def _on_state_changed(self, state: ConnectionState) -> None:
        self._status_label.setText(state.value)
        self._status_dot.setStyleSheet(f"color: {STATUS_COLORS[state]};")
        if state == ConnectionState.CONNECTED:
            self._connected_since = time.monotonic()
        elif state == ConnectionState.DISCONNECTED:
            self._connected_since = None

    @Slot(object)
    def _on_envelope_processed(self, report: VitalsReport) -> None:
        self._sync_visibility()
        self._cards["hr"].set_reading(report.heart_rate)
        self._cards["spo2"].set_reading(report.spo2)
        self._cards["resp"].set_reading(report.respiratory_rate)
        bp = report.blood_pressure
        if bp is None:
            self._cards["bp"].set_text("--/--", VitalStatus.NO_SENSOR)
        else:
            self._cards["bp"].set_text(
                f"{bp.systolic:.0f}/{bp.diastolic:.0f}", report.blood_pressure_status
            )
        self._cards["temp_core"].set_reading(report.temp_core)
        self._cards["temp_skin"].set_reading(report.temp_skin)

    def _sync_visibility(self) -> None:
        for cid, view in self._views.items():
            channel = self._session.channels[cid]
            view.set_channel_state(channel.visible, channel.attached)

    def _on_channel_toggled(self, channel_id: ChannelId, enabled: bool) -> None:
        if self._session.set_channel_enabled(channel_id, enabled):
            self._sync_visibility()

    @Slot()
    def _on_repaint(self) -> None:
        self._renderer.tick(time.monotonic() * 1000.0)

    @Slot()
    def _update_footer(self) -> None:
        session = self._session
        self._session_label.setText(
            f"Session {_format_duration(session.session_duration_s())}"
        )
        runtime = 0
        if self._connected_since is not None:
            runtime = int(time.monotonic() - self._connected_since)
        self._runtime_label.setText(f"Stream {_format_duration(runtime)}")
        self._rate_label.setText(f"Update rate {session.config.nominal_rate_hz:.0f} Hz")
        self._points_label.setText(f"Data points {session.total_data_points}")
        self._fps_label.setText(f"Render {self._renderer.stats.fps():.1f} fps")

    # ----------------------------------------------------------------- export
    @Slot()
    def _on_export_clicked(self) -> None:
        suggested = str(Path.cwd() / default_export_name())
        path, _ = QFileDialog.getSaveFileName(
            self, self.tr("Export data"), suggested, "JSON files (*.json)"
        )
        if not path:
            return
        try:
            write_export(Path(path), build_export(self._session))
        except OSError as exc:
            logger.exception("Export to %s failed", path)
            QMessageBox.warning(self, self.tr("Export failed"), str(exc))

    def card(self, key: str) -> VitalCard:
        return self._cards[key]

    def waveform_view(self, channel_id: ChannelId) -> WaveformView:
        return self._views[channel_id]

    def footer_text(self) -> str:
        labels = (self._runtime_label, self._rate_label, self._points_label, self._fps_label)
        return " | ".join(label.text() for label in labels)

    @property
    def renderer(self) -> WaveformRenderer:
        return self._renderer

    @property
    def client(self) -> StreamClient:
        return self._client

    def closeEvent(self, event: QCloseEvent) -> None:
        self._repaint_timer.stop()
        self._session_timer.stop()
        self._client.shutdown()
        super().closeEvent(event)


__all__ = ["MonitorWindow", "VitalCard"]
