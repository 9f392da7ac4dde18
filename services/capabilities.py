# services/capabilities.py
from typing import Dict

from publishers import registry
from publishers.registry import Capability, ScopeOperation
from services.errors import CapabilityNotSupported, UnknownProvider


def has_capability(account, capability) -> bool:
    """Answers from the provider's feature flags only; the account's own state is irrelevant."""
    try:
        capability = Capability(capability)
    except ValueError:
        return False
    provider = registry.lookup(account.provider)
    return bool(provider and provider.supports(capability))


def require_capability(provider_id, capability):
    provider = registry.lookup(provider_id)
    if provider is None:
        raise UnknownProvider(f"Unknown provider '{provider_id}'")
    if not provider.supports(capability):
        raise CapabilityNotSupported(f"{provider.name} does not support {Capability(capability).value}")
    return provider


def required_scopes(provider_id, operation) -> str:
    provider = registry.lookup(provider_id)
    if provider is None:
        raise UnknownProvider(f"Unknown provider '{provider_id}'")
    return provider.scopes.for_operation(ScopeOperation(operation))


def endpoints(provider_id) -> Dict[str, str]:
    provider = registry.lookup(provider_id)
    if provider is None:
        return {}
    return {name.value: url for name, url in provider.endpoints.items()}
