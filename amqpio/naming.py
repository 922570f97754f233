def make_name(instance_name, name):
    """Prefix a broker-visible name with the instance identity"""
    return f"{instance_name}.{name}"


class NamespaceResolver:
    """
    Derives queue names and routing keys for one instance identity.

    Every name that reaches the broker goes through one of these methods,
    so two instances never share a queue or routing key by accident.
    """

    def __init__(self, instance_name: str):
        self._instance_name = instance_name

    @property
    def instance_name(self) -> str:
        return self._instance_name

    def resolve_route_name(self, subroute: str) -> str:
        return make_name(self._instance_name, subroute)

    def resolve_queue_name(self, name: str) -> str:
        return make_name(self._instance_name, name)
