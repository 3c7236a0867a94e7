from ..node_schemas import get_node_json_schema


def register(app):
    @app.get('/api/node-types/{node_type}/schema')
    def node_type_schema(node_type: str):
        return get_node_json_schema(node_type)
