"""Desktop GUI implementation built with PySide6/Qt and pyqtgraph.

:mod:`gui.renderer` decides what to draw and when, :mod:`gui.waveform_view`
draws it, and :mod:`gui.main_window` hosts the vital cards, waveforms and
footer. This layer owns the Qt event loop and delegates streaming to
:mod:`vitalscope.remote` and buffering to :mod:`vitalscope.core`.
"""
