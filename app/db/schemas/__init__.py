from .patient_schema import *  # noqa: F401,F403
from .registry_schemas import *  # noqa: F401,F403
from .appointment_schemas import *  # noqa: F401,F403
from .trip_schemas import *  # noqa: F401,F403
from .manifest_schemas import *  # noqa: F401,F403
