import asyncio

import httpx

from visit_planner.cache import Cache
from visit_planner.services.cep_service import AddressFields, PostalCodeResolver


class DictCache(Cache):
    """Cache backed by a dict standing in for the Redis client"""

    def __init__(self):
        super().__init__()
        self.data = {}
        self.redis_client = self

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ttl=None):
        self.data[key] = value
        return True


def _resolver(handler, cache_backend=None) -> PostalCodeResolver:
    return PostalCodeResolver(
        base_url="https://cep.test/ws",
        cache_backend=cache_backend,
        transport=httpx.MockTransport(handler),
    )


def test_lookup_maps_directory_fields() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/ws/01310100/json/"
        return httpx.Response(
            200,
            json={
                "cep": "01310-100",
                "logradouro": "Avenida Paulista",
                "bairro": "Bela Vista",
                "localidade": "São Paulo",
                "uf": "SP",
            },
        )

    result = asyncio.run(_resolver(handler).lookup("01310100"))

    assert result == AddressFields(
        postal_code="01310100",
        street="Avenida Paulista",
        sublocality="Bela Vista",
        city="São Paulo",
        state="SP",
    )


def test_unknown_code_is_not_found_without_raising() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"erro": "true"})

    assert asyncio.run(_resolver(handler).lookup("99999999")) is None


def test_service_failure_is_reported_as_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    assert asyncio.run(_resolver(handler).lookup("01310100")) is None


def test_network_failure_is_reported_as_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert asyncio.run(_resolver(handler).lookup("01310100")) is None


def test_malformed_code_never_hits_the_directory() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    assert asyncio.run(_resolver(handler).lookup("123")) is None
    assert calls == []


def test_positive_lookups_are_cached() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"logradouro": "Rua Augusta", "uf": "SP"})

    cache = DictCache()
    resolver = _resolver(handler, cache_backend=cache)

    first = asyncio.run(resolver.lookup("01305-000"))
    second = asyncio.run(resolver.lookup("01305000"))

    assert first == second
    assert first.street == "Rua Augusta"
    assert len(calls) == 1
    assert "cep:01305000" in cache.data


def test_resolver_helpers() -> None:
    assert PostalCodeResolver.normalize("01310-100") == "01310100"
    assert PostalCodeResolver.is_valid_format("01310100")
    assert not PostalCodeResolver.is_valid_format("0131010")
    assert PostalCodeResolver.apply_mask("01310100") == "01310-100"
