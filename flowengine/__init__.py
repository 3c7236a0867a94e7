"""flowengine: durable execution of node graphs (triggers, HTTP calls, model calls).

The runner entry point lives in flowengine.runner; the HTTP surface in
flowengine.app and the Celery task in flowengine.tasks.
"""

__version__ = "0.1.0"
