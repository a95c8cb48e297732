"""Base interface for providers.

A :class:`Provider` is the unit the registry stores. It exposes three things:

* its identity (:class:`ProviderMetadata`),
* an availability predicate (credentials present, runtime importable...),
* a directory of declared models and a way to materialize one of them.

Optional behavior (streaming, long-running operations, concurrent use) is not
expressed through subclassing; each model declares it in its metadata
(``invocation_shapes`` and capabilities) and the runtime dispatches on that
table.
"""

from __future__ import annotations

import importlib.util
import os
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Union

from ..core.errors import UnknownModelError
from ..models.config import ResolvedModelConfig
from ..models.metadata import ModelMetadata, ProviderMetadata

if TYPE_CHECKING:
    from ..invocation.model import GenerativeModel

# =====================================================================
# Availability predicates
# =====================================================================


class Availability(Protocol):
    """Answers "is this provider usable right now"."""

    def __call__(self) -> bool: ...


class AlwaysAvailable:
    """Availability for providers with no external precondition."""

    def __call__(self) -> bool:
        return True

    def __repr__(self) -> str:
        return "AlwaysAvailable()"


class EnvVarAvailability:
    """Available when at least one of the environment variables is set and non-empty.

    Args:
        names: Environment variable names, e.g. ``["GOOGLE_API_KEY", "GEMINI_API_KEY"]``
    """

    def __init__(self, names: Union[str, Sequence[str]]) -> None:
        self._names = [names] if isinstance(names, str) else list(names)
        if not self._names:
            raise ValueError("EnvVarAvailability needs at least one variable name")

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def __call__(self) -> bool:
        return any(os.environ.get(name, "").strip() for name in self._names)

    def __repr__(self) -> str:
        return f"EnvVarAvailability({self._names!r})"


class ModuleAvailability:
    """Available when a Python module (a local runtime) can be imported."""

    def __init__(self, module: str) -> None:
        self._module = module

    def __call__(self) -> bool:
        try:
            return importlib.util.find_spec(self._module) is not None
        except (ImportError, ValueError):
            return False

    def __repr__(self) -> str:
        return f"ModuleAvailability({self._module!r})"


class AllOf:
    """Available when every wrapped predicate is."""

    def __init__(self, *predicates: Availability) -> None:
        self._predicates = predicates

    def __call__(self) -> bool:
        return all(predicate() for predicate in self._predicates)

    def __repr__(self) -> str:
        return f"AllOf{self._predicates!r}"


# =====================================================================
# Model directory
# =====================================================================


class ModelDirectory:
    """Ordered, read-only directory of a provider's model metadata.

    Iteration follows declaration order, which discovery relies on.
    """

    def __init__(self, provider_id: str, models: Iterable[ModelMetadata] = ()) -> None:
        self._provider_id = provider_id
        entries: Dict[str, ModelMetadata] = {}
        for metadata in models:
            if metadata.id in entries:
                raise ValueError(f"provider '{provider_id}' declares model '{metadata.id}' more than once")
            entries[metadata.id] = metadata
        self._models = entries

    def get(self, model_id: str) -> ModelMetadata:
        """
        Retrieve model metadata by id.

        Raises:
            UnknownModelError: If the provider declares no such model.
        """
        try:
            return self._models[model_id]
        except KeyError:
            raise UnknownModelError(self._provider_id, model_id) from None

    def has(self, model_id: str) -> bool:
        return model_id in self._models

    def ids(self) -> List[str]:
        return list(self._models)

    def __iter__(self) -> Iterator[ModelMetadata]:
        return iter(list(self._models.values()))

    def __len__(self) -> int:
        return len(self._models)

    def __repr__(self) -> str:
        return f"ModelDirectory(provider={self._provider_id}, models={self.ids()})"


# =====================================================================
# Provider
# =====================================================================


class Provider(ABC):
    """Abstract base class for providers.

    Subclasses pass their metadata, availability predicate and declared models
    to ``__init__`` and implement :meth:`create_model`. Everything else the
    registry needs is answered from the declared metadata, without I/O.

    Usage:
        class AcmeProvider(Provider):
            def __init__(self):
                super().__init__(
                    ProviderMetadata(id="acme", type=ProviderType.cloud),
                    models=[ModelMetadata(id="acme-1", features=[Feature.text_generation])],
                    availability=EnvVarAvailability("ACME_API_KEY"),
                )

            def create_model(self, metadata, config):
                return AcmeModel(self.id, metadata, config)
    """

    def __init__(
        self,
        metadata: ProviderMetadata,
        *,
        models: Iterable[ModelMetadata] = (),
        availability: Optional[Availability] = None,
    ) -> None:
        self._metadata = metadata
        self._directory = ModelDirectory(metadata.id, models)
        self._availability: Availability = availability or AlwaysAvailable()

    @property
    def metadata(self) -> ProviderMetadata:
        return self._metadata

    @property
    def id(self) -> str:
        return self._metadata.id

    @property
    def models(self) -> ModelDirectory:
        return self._directory

    @property
    def availability(self) -> Availability:
        return self._availability

    def is_available(self) -> bool:
        """Evaluate the availability predicate. May raise; the registry guards it."""
        return bool(self._availability())

    @abstractmethod
    def create_model(self, metadata: ModelMetadata, config: ResolvedModelConfig) -> "GenerativeModel":
        """
        Materialize a usable model.

        Called by the registry after the config has been validated against
        ``metadata``. Must not perform network I/O.

        Args:
            metadata: Declared metadata of the model to build
            config: Validated and merged configuration

        Returns:
            GenerativeModel bound to this provider
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id}, models={self._directory.ids()})"


ProviderFactory = Callable[[], Provider]
