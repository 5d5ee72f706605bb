"""Policy catalog API package.

An optional FastAPI service layer exposing registry queries, grouping and
policy state changes over HTTP.
"""

from .server import create_app  # noqa: F401
