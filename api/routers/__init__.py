"""API routers package"""

from . import accounts
from . import auth
from . import buckets
from . import refresh
