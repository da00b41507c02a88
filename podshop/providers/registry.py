# podshop/providers/registry.py
from typing import Mapping

from podshop.providers.base import ProviderAdapter, ProviderType
from podshop.providers.printful import PrintfulAdapter
from podshop.providers.printify import PrintifyAdapter
from podshop.providers.printrove import PrintroveAdapter
from podshop.utils.errors import UnknownProviderError


class ProviderRegistry:
    """Identyfikator providera -> adapter. Nieznany provider = blad, nigdy no-op."""

    def __init__(self, adapters: Mapping[ProviderType, ProviderAdapter]):
        self._adapters = dict(adapters)

    def get(self, provider: ProviderType | str) -> ProviderAdapter:
        key = ProviderType.parse(provider)
        adapter = self._adapters.get(key)
        if adapter is None:
            raise UnknownProviderError(f"No adapter registered for {key.value}")
        return adapter

    @property
    def providers(self) -> list[ProviderType]:
        return list(self._adapters)


def build_registry(credentials: Mapping[str, str | None]) -> ProviderRegistry:
    return ProviderRegistry(
        {
            ProviderType.PRINTROVE: PrintroveAdapter(
                api_key=credentials.get("PRINTROVE_API_KEY"),
                webhook_secret=credentials.get("PRINTROVE_WEBHOOK_SECRET"),
            ),
            ProviderType.PRINTFUL: PrintfulAdapter(
                api_key=credentials.get("PRINTFUL_API_KEY"),
                webhook_secret=credentials.get("PRINTFUL_WEBHOOK_SECRET"),
            ),
            ProviderType.PRINTIFY: PrintifyAdapter(
                api_key=credentials.get("PRINTIFY_API_KEY"),
                shop_id=credentials.get("PRINTIFY_SHOP_ID"),
                webhook_secret=credentials.get("PRINTIFY_WEBHOOK_SECRET"),
            ),
        }
    )
