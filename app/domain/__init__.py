# app/domain/__init__.py
from .errors import *
from .outcomes import *
from .commands import *
from .entity_store import *
from .capacity_validator import *
from .conflict_detector import *
from .appointment_state_machine import *
from .manifest_builder import *
from .trip_lifecycle import *
from .registry import *
