"""Azure Functions blueprints"""

from tvbingefriend_watch_history.blueprints.watched_bp import bp as watched_bp

__all__ = ["watched_bp"]
