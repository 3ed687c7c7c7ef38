"""
Battery Charger Monitor - Backend Services
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Retention engine and cycle monitor
v1.0.0 (2026-10-05): Initial services module
"""

from . import history_store
from . import state_machine
from . import phase_energy
from . import soc
from . import logging_gate
from . import retention
from . import cycle_monitor
