"""
Provider strategies: how to ask one upstream service for a CEP and how
to turn its answer into an Address.

Concrete providers subclass Provider and set a NAME; they are
registered automatically so they can be built by name from settings:

    provider = Provider.from_name("ViaCEP", timeout=2.0)

`transform` must raise CepNotFoundError when the service reports that
the CEP does not exist rather than returning a partial address.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import CepNotFoundError, ProviderResponseError
from .models import Address
from .validation import cep_digits

logger = logging.getLogger(__name__)


class Provider(ABC):
    """
    Abstract base for CEP providers.

    Attributes:
        name: Unique display id, reported as Address.service
        timeout: Optional per-request timeout in seconds
    """

    # Unique key for each concrete subclass (e.g., 'ViaCEP')
    NAME: ClassVar[str]

    # Global registry of provider classes, keyed by lowercased NAME
    _REGISTRY: ClassVar[dict[str, Type["Provider"]]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)

        # Only register classes that define NAME themselves
        if "NAME" in cls.__dict__:
            key = str(cls.NAME).lower()
            if key in Provider._REGISTRY and Provider._REGISTRY[key] is not cls:
                raise RuntimeError(f"Duplicate provider NAME '{cls.NAME}' for {cls.__name__}")
            Provider._REGISTRY[key] = cls
            logger.debug(f"Registered provider: {cls.__name__} as '{key}'")

    def __init__(self, timeout: Optional[float] = None, name: Optional[str] = None):
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.timeout = timeout
        self.name = name or getattr(self, "NAME", type(self).__name__)

    @classmethod
    def registered(cls) -> list[str]:
        """Names of all registered providers."""
        return [p.NAME for p in cls._REGISTRY.values()]

    @classmethod
    def from_name(cls, name: str, **kwargs: Any) -> "Provider":
        """Instantiate a registered provider by NAME (case-insensitive)."""
        key = name.lower()
        if key not in cls._REGISTRY:
            available = ", ".join(sorted(cls.registered()))
            raise ValueError(f"Unknown provider '{name}'. Available providers: {available}")
        return cls._REGISTRY[key](**kwargs)

    @abstractmethod
    def build_url(self, cep: str) -> str:
        """Return the request URL for a canonical 8-digit CEP."""
        pass

    @abstractmethod
    def transform(self, response: Any) -> Address:
        """
        Convert a raw response into an Address.

        Raises:
            CepNotFoundError: The service reported no data for the CEP
            ProviderResponseError: The payload does not match the schema
        """
        pass

    def _parse(self, model: Type[BaseModel], response: Any) -> Any:
        if not isinstance(response, dict):
            raise ProviderResponseError(
                self.name,
                [{"loc": (), "msg": f"expected a JSON object, got {type(response).__name__}", "type": "type_error"}],
            )
        try:
            return model.model_validate(response)
        except ValidationError as e:
            raise ProviderResponseError.from_validation_error(self.name, e) from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, timeout={self.timeout!r})"


class CallableProvider(Provider):
    """Provider assembled from plain functions, for custom services."""

    def __init__(
        self,
        name: str,
        build_url: Callable[[str], str],
        transform: Callable[[Any], Address],
        timeout: Optional[float] = None,
    ):
        super().__init__(timeout=timeout, name=name)
        self._build_url = build_url
        self._transform = transform

    def build_url(self, cep: str) -> str:
        return self._build_url(cep)

    def transform(self, response: Any) -> Address:
        return self._transform(response)


# Raw payload schemas. The fields that identify an address are required
# and non-empty; not-found answers are detected before validation.

class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class ViaCepResponse(_Payload):
    cep: str = Field(min_length=1)
    uf: str = Field(min_length=1)
    localidade: str = Field(min_length=1)
    logradouro: str = ""
    bairro: str = ""
    ibge: Optional[str] = None
    ddd: Optional[str] = None


class BrasilApiResponse(_Payload):
    cep: str = Field(min_length=1)
    state: str = Field(min_length=1)
    city: str = Field(min_length=1)
    neighborhood: Optional[str] = ""
    street: Optional[str] = ""


class OpenCepResponse(_Payload):
    cep: str = Field(min_length=1)
    uf: str = Field(min_length=1)
    localidade: str = Field(min_length=1)
    logradouro: str = ""
    bairro: str = ""
    ibge: Optional[str] = None


class ApiCepResponse(_Payload):
    code: str = Field(min_length=1)
    state: str = Field(min_length=1)
    city: str = Field(min_length=1)
    district: str = ""
    address: str = ""


def _truthy_flag(value: Any) -> bool:
    # ViaCEP has answered both {"erro": true} and {"erro": "true"}
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return bool(value)


class ViaCepProvider(Provider):
    NAME = "ViaCEP"

    def build_url(self, cep: str) -> str:
        return f"https://viacep.com.br/ws/{cep}/json/"

    def transform(self, response: Any) -> Address:
        if isinstance(response, dict) and _truthy_flag(response.get("erro")):
            raise CepNotFoundError(provider=self.name)
        payload = self._parse(ViaCepResponse, response)
        return Address(
            cep=cep_digits(payload.cep),
            state=payload.uf,
            city=payload.localidade,
            neighborhood=payload.bairro,
            street=payload.logradouro,
            service=self.name,
            ibge=payload.ibge or None,
            ddd=payload.ddd or None,
        )


class BrasilApiProvider(Provider):
    NAME = "BrasilAPI"

    def build_url(self, cep: str) -> str:
        return f"https://brasilapi.com.br/api/cep/v1/{cep}"

    def transform(self, response: Any) -> Address:
        if isinstance(response, dict) and (response.get("errors") or response.get("message")):
            raise CepNotFoundError(cep=response.get("cep") or None, provider=self.name)
        payload = self._parse(BrasilApiResponse, response)
        return Address(
            cep=cep_digits(payload.cep),
            state=payload.state,
            city=payload.city,
            neighborhood=payload.neighborhood or "",
            street=payload.street or "",
            service=self.name,
        )


class OpenCepProvider(Provider):
    NAME = "OpenCEP"

    def build_url(self, cep: str) -> str:
        return f"https://opencep.com/v1/{cep}"

    def transform(self, response: Any) -> Address:
        if isinstance(response, dict) and response.get("error"):
            raise CepNotFoundError(provider=self.name)
        payload = self._parse(OpenCepResponse, response)
        return Address(
            cep=cep_digits(payload.cep),
            state=payload.uf,
            city=payload.localidade,
            neighborhood=payload.bairro,
            street=payload.logradouro,
            service=self.name,
            ibge=payload.ibge or None,
        )


class ApiCepProvider(Provider):
    NAME = "ApiCEP"

    def build_url(self, cep: str) -> str:
        return f"https://cdn.apicep.com/file/apicep/{cep}.json"

    def transform(self, response: Any) -> Address:
        if isinstance(response, dict) and (
            response.get("ok") is False or response.get("status") not in (None, 200, "200")
        ):
            raise CepNotFoundError(provider=self.name)
        payload = self._parse(ApiCepResponse, response)
        return Address(
            cep=cep_digits(payload.code),
            state=payload.state,
            city=payload.city,
            neighborhood=payload.district,
            street=payload.address,
            service=self.name,
        )


def default_providers(timeout: Optional[float] = None) -> list[Provider]:
    """Fresh instances of the built-in providers, in default priority order."""
    return [
        ViaCepProvider(timeout=timeout),
        BrasilApiProvider(timeout=timeout),
        OpenCepProvider(timeout=timeout),
        ApiCepProvider(timeout=timeout),
    ]
