# spabook/routers/__init__.py
from . import health
from . import auth
from . import dev
from . import procedures
from . import appointments
from . import admin
from . import functions
from . import realtime

__all__ = ["health", "auth", "dev", "procedures", "appointments", "admin", "functions", "realtime"]
