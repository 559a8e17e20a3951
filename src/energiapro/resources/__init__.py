"""Resource operations for the EnergiaPro API.

Each module wraps one family of endpoints behind a small resource class
that builds typed requests and sends them through a shared
EnergiaProRestClient.
"""

from .installations import InstallationsResource
from .measurements import MeasurementsResource

__all__ = ["InstallationsResource", "MeasurementsResource"]
