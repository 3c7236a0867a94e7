"""HTTP routes, grouped by area. Each module exposes ``register(app)``."""

from . import executions, node_types, triggers


def register_all(app):
    for mod in (triggers, executions, node_types):
        mod.register(app)
