"""Provider registry.

The registry maps provider ids (and their aliases) to registered providers and
answers three kinds of questions:

* identity: is a provider registered / configured, what does it declare?
* resolution: turn (provider id, model id, config) into a usable model;
* discovery: which configured (provider, model) pairs satisfy a feature and a
  set of required capabilities?

Registration is copy-on-write: a new provider table is built and published
under a lock, so readers always see either the old or the new table in full.
Discovery and resolution never perform I/O.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..core.errors import (
    DuplicateProviderError,
    ProviderMeshError,
    ProviderUnavailableError,
    UnknownProviderError,
)
from ..core.logging_config import get_logger
from ..models.config import ConfigLike, as_model_config
from ..models.enums import Feature
from ..models.metadata import ModelMatch, ModelMetadata, ProviderDescriptor, ProviderMetadata
from .base import Provider
from .validation import model_supports, required_mapping, resolve_config

if TYPE_CHECKING:
    from ..invocation.model import GenerativeModel

logger = get_logger(__name__)

ProviderFactoryLike = Union[Callable[[], Provider], type]


@dataclass(frozen=True)
class _Table:
    """Immutable snapshot of every registration, in registration order."""

    providers: Dict[str, Provider]
    aliases: Dict[str, str]

    def resolve(self, id_or_alias: str) -> Optional[Provider]:
        provider_id = self.aliases.get(id_or_alias, id_or_alias)
        return self.providers.get(provider_id)


class ProviderRegistry:
    """Registry of generative-AI providers.

    Usage:
        registry = ProviderRegistry()
        registry.register_provider("acme", AcmeProvider)
        matches = registry.find_models_for_support(Feature.text_generation, {"candidate_count": 2})
        model = registry.get_provider_model(*matches[0].as_pair(), config={"candidate_count": 2})
        result = await model.invoke("Hello")
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._table = _Table(providers={}, aliases={})

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_provider(self, provider_id: str, factory: ProviderFactoryLike) -> Provider:
        """
        Register a provider under ``provider_id``.

        The factory is called exactly once; its provider's metadata is what
        discovery filters over from then on.

        Args:
            provider_id: Id the provider is registered under
            factory: Provider class or zero-argument callable returning a Provider

        Returns:
            The registered Provider instance

        Raises:
            DuplicateProviderError: If the id or one of the aliases is already taken.
                The earlier registration is left untouched.
            ValueError: If the factory does not produce a Provider with id ``provider_id``.
        """
        self._check_free(self._table, provider_id)
        provider = factory()
        if not isinstance(provider, Provider):
            raise ValueError(f"Factory for '{provider_id}' returned {type(provider).__name__}, not a Provider")
        if provider.id != provider_id:
            raise ValueError(f"Factory for '{provider_id}' produced a provider with id '{provider.id}'")

        with self._lock:
            table = self._table
            self._check_free(table, provider_id)
            for alias in provider.metadata.aliases:
                self._check_free(table, alias)
            providers = dict(table.providers)
            providers[provider_id] = provider
            aliases = dict(table.aliases)
            aliases.update({alias: provider_id for alias in provider.metadata.aliases})
            self._table = _Table(providers=providers, aliases=aliases)

        logger.info(
            f"Registered provider: id={provider_id}, type={provider.metadata.type.value}, "
            f"models={provider.models.ids()}"
        )
        return provider

    @staticmethod
    def _check_free(table: _Table, key: str) -> None:
        if key in table.providers:
            raise DuplicateProviderError(key)
        if key in table.aliases:
            raise DuplicateProviderError(key, existing=table.aliases[key])

    def unregister_provider(self, provider_id: str) -> None:
        """
        Remove a registration and its aliases.

        Raises:
            UnknownProviderError: If ``provider_id`` is not registered.
        """
        with self._lock:
            table = self._table
            if provider_id not in table.providers:
                raise UnknownProviderError(provider_id)
            providers = {k: v for k, v in table.providers.items() if k != provider_id}
            aliases = {k: v for k, v in table.aliases.items() if v != provider_id}
            self._table = _Table(providers=providers, aliases=aliases)
        logger.info(f"Unregistered provider: id={provider_id}")

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def has_provider(self, provider_id: str) -> bool:
        return self._table.resolve(provider_id) is not None

    def get_provider(self, provider_id: str) -> Provider:
        """
        Look a provider up by id or alias.

        Raises:
            UnknownProviderError: If nothing is registered under ``provider_id``.
        """
        provider = self._table.resolve(provider_id)
        if provider is None:
            raise UnknownProviderError(provider_id)
        return provider

    def is_provider_configured(self, provider_id: str) -> bool:
        """Whether the provider is registered and its availability predicate holds. Never raises."""
        provider = self._table.resolve(provider_id)
        if provider is None:
            return False
        return self._is_available(provider)

    @staticmethod
    def _is_available(provider: Provider) -> bool:
        try:
            return provider.is_available()
        except Exception as exc:
            logger.warning(
                f"Availability check failed, treating provider as unconfigured: id={provider.id}, "
                f"error={type(exc).__name__}"
            )
            return False

    def list_providers(self) -> List[ProviderMetadata]:
        """Metadata of every registered provider, in registration order."""
        return [provider.metadata for provider in self._table.providers.values()]

    def list_models(self, provider_id: str) -> List[ModelMetadata]:
        return list(self.get_provider(provider_id).models)

    def get_model_metadata(self, provider_id: str, model_id: str) -> ModelMetadata:
        """
        Raises:
            UnknownProviderError: If the provider is not registered.
            UnknownModelError: If the provider declares no such model.
        """
        return self.get_provider(provider_id).models.get(model_id)

    def describe(self) -> List[ProviderDescriptor]:
        """Snapshot of every registration, suitable for JSON exposure."""
        return [
            ProviderDescriptor(
                provider=provider.metadata,
                configured=self._is_available(provider),
                models=list(provider.models),
            )
            for provider in self._table.providers.values()
        ]

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def get_provider_model(self, provider_id: str, model_id: str, config: ConfigLike = None) -> "GenerativeModel":
        """
        Resolve a usable model.

        Checks run in a fixed order and all of them happen before any I/O.

        Args:
            provider_id: Provider id or alias
            model_id: Model id within that provider
            config: Caller config (a ``ModelConfig`` or a plain mapping)

        Returns:
            GenerativeModel carrying the validated, merged configuration

        Raises:
            UnknownProviderError: If the provider is not registered.
            ProviderUnavailableError: If the provider's availability predicate is false.
            UnknownModelError: If the provider declares no such model.
            InvalidConfigError: If a declared capability rejects a config value.
        """
        provider = self.get_provider(provider_id)
        if not self._is_available(provider):
            raise ProviderUnavailableError(provider.id)
        metadata = provider.models.get(model_id)
        caller = as_model_config(config)
        resolved = resolve_config(provider.metadata, metadata, caller)
        logger.debug(
            f"Resolving model: provider={provider.id}, model={model_id}, "
            f"keys={sorted(resolved.values)}, passthrough_keys={sorted(resolved.passthrough)}"
        )
        try:
            return provider.create_model(metadata, resolved)
        except ProviderMeshError as exc:
            raise exc.bind(provider.id, model_id)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def find_models_for_support(
        self,
        feature: Union[Feature, str],
        required_capabilities: ConfigLike = None,
    ) -> List[ModelMatch]:
        """
        Every configured (provider, model) pair that supports ``feature`` and
        accepts every required capability value.

        Pure filter over declared metadata: no ranking, no I/O, no model is
        instantiated. Ordered by provider registration, then model declaration.

        Args:
            feature: Feature the model must support
            required_capabilities: Capability name to required value; ``ANY_VALUE``
                asks only that the capability be supported

        Returns:
            List of ModelMatch, possibly empty
        """
        wanted = Feature(feature)
        required = required_mapping(required_capabilities)
        matches: List[ModelMatch] = []
        for provider in self._table.providers.values():
            if not self._is_available(provider):
                logger.debug(f"Skipping unconfigured provider during discovery: id={provider.id}")
                continue
            matches.extend(self._matches(provider, wanted, required))
        logger.debug(f"Discovery for {wanted.value} with {sorted(required)}: {len(matches)} match(es)")
        return matches

    def find_provider_models_for_support(
        self,
        provider_id: str,
        feature: Union[Feature, str],
        required_capabilities: ConfigLike = None,
    ) -> List[ModelMatch]:
        """
        Same as :meth:`find_models_for_support`, scoped to one provider.

        An unconfigured provider yields no matches.

        Raises:
            UnknownProviderError: If the provider is not registered.
        """
        provider = self.get_provider(provider_id)
        if not self._is_available(provider):
            return []
        return self._matches(provider, Feature(feature), required_mapping(required_capabilities))

    @staticmethod
    def _matches(provider: Provider, feature: Feature, required: Mapping[str, object]) -> List[ModelMatch]:
        return [
            ModelMatch(provider_id=provider.id, provider_type=provider.metadata.type, model=model)
            for model in provider.models
            if model_supports(model, feature, required)
        ]

    # ------------------------------------------------------------------

    def provider_ids(self) -> Tuple[str, ...]:
        return tuple(self._table.providers)

    def __contains__(self, provider_id: object) -> bool:
        return isinstance(provider_id, str) and self.has_provider(provider_id)

    def __len__(self) -> int:
        return len(self._table.providers)

    def __repr__(self) -> str:
        return f"ProviderRegistry(providers={list(self._table.providers)})"
