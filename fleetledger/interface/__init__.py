"""Mini README: Outer interfaces for the fleetledger finance core.

Exports the FastAPI application factory serving the JSON API. The CLI entry
point lives in ``main_finance_centre.py`` at the repository root.
"""

from .web_app import create_application

__all__ = ["create_application"]
