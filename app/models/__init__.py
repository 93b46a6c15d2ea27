# SmartGatePass — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.gate_pass import GatePass             # noqa
from app.models.quota_counter import QuotaCounter     # noqa
from app.models.scan_record import ScanRecord         # noqa
from app.models.notification import Notification      # noqa
