"""VitalScope: live physiological waveform monitor.

Envelopes arrive over a server-sent event stream (:mod:`vitalscope.remote`),
are buffered per channel (:mod:`vitalscope.core`), turned into heart and
respiratory rates (:mod:`vitalscope.analysis`) and drawn by the PySide6 GUI
(:mod:`vitalscope.gui`).
"""

__version__ = "0.1.0"
