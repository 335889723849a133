"""News source adapters."""

from __future__ import annotations

from typing import Dict, Iterable, Type

from .base import BaseProvider, ProviderList
from .bbc_indonesia import BBCIndonesiaProvider
from .cnn_indonesia import CNNIndonesiaProvider
from .detik import DetikProvider
from .kompas import KompasProvider

PROVIDERS: Dict[str, Type[BaseProvider]] = {
    "cnn_indonesia": CNNIndonesiaProvider,
    "detik": DetikProvider,
    "bbc_indonesia": BBCIndonesiaProvider,
    "kompas": KompasProvider,
}


def build_providers(names: Iterable[str], user_agent: str) -> ProviderList:
    providers: ProviderList = []
    for name in names:
        try:
            provider_cls = PROVIDERS[name]
        except KeyError:
            raise ValueError(f"Unknown news source: {name}") from None
        providers.append(provider_cls(user_agent=user_agent))
    return providers


__all__ = [
    "BaseProvider",
    "ProviderList",
    "PROVIDERS",
    "build_providers",
    "BBCIndonesiaProvider",
    "CNNIndonesiaProvider",
    "DetikProvider",
    "KompasProvider",
]
