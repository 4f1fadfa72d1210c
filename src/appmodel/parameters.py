"""
Parameter store.

Parameters are resolved lazily: the configured ``Parameters:<name>`` value
wins, otherwise a generated default is produced once and cached for the
lifetime of the store. Generation happens under a lock so that concurrent
first access never yields two different secrets for one parameter.
"""

import logging
import secrets
import string
import threading
from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping

from .config import PARAMETERS_CONFIG_PREFIX, Config
from .errors import MissingParameterValueError
from .model.resources import ParameterResource

logger = logging.getLogger(__name__)

SPECIAL_CHARACTERS = "-_.{}~()*+!?"


@dataclass(frozen=True)
class GenerateParameterDefault:
    """Recipe for a generated parameter value."""

    min_length: int = 22
    lower: bool = True
    upper: bool = True
    numeric: bool = True
    special: bool = True

    def __post_init__(self) -> None:
        if self.min_length <= 0:
            raise ValueError("min_length must be a positive integer")
        if not any((self.lower, self.upper, self.numeric, self.special)):
            raise ValueError("At least one character class must be enabled")

    def _character_classes(self) -> list[str]:
        classes = []
        if self.lower:
            classes.append(string.ascii_lowercase)
        if self.upper:
            classes.append(string.ascii_uppercase)
        if self.numeric:
            classes.append(string.digits)
        if self.special:
            classes.append(SPECIAL_CHARACTERS)
        return classes

    def generate(self) -> str:
        """Generate a value containing at least one character of each enabled class."""
        classes = self._character_classes()
        alphabet = "".join(classes)
        length = max(self.min_length, len(classes))

        chars = [secrets.choice(chars) for chars in classes]
        chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
        secrets.SystemRandom().shuffle(chars)
        return "".join(chars)

    def to_manifest(self) -> dict[str, Any]:
        generate: dict[str, Any] = {"minLength": self.min_length}
        for flag in ("lower", "upper", "numeric", "special"):
            if not getattr(self, flag):
                generate[flag] = False
        return {"generate": generate}


class ParameterStore:
    """
    Holds parameter values for one application.

    Args:
        configuration: Mapping with ``Parameters:<name>`` keys. The mapping is
            read at resolution time, so later updates are observed.
    """

    def __init__(self, configuration: Mapping[str, Any] | None = None):
        if configuration is None:
            configuration = Config.load_runtime_config().parameters
        self._configuration = configuration
        self._parameters: dict[str, ParameterResource] = {}
        self._generated: dict[str, str] = {}
        self._lock = threading.RLock()

    @property
    def configuration(self) -> Mapping[str, Any]:
        return self._configuration

    def declare(
        self,
        name: str,
        secret: bool = False,
        default: GenerateParameterDefault | None = None,
    ) -> ParameterResource:
        """Create a parameter bound to this store."""
        parameter = ParameterResource(name, secret=secret, default=default)
        self.register(parameter)
        return parameter

    def register(self, parameter: ParameterResource) -> None:
        parameter.bind(self)
        self._parameters[parameter.name] = parameter

    def get(self, name: str) -> ParameterResource | None:
        return self._parameters.get(name)

    def set_value(self, name: str, value: str) -> None:
        """Set a configured value; only possible when the configuration is mutable."""
        if not isinstance(self._configuration, MutableMapping):
            raise TypeError("Parameter configuration is read-only")
        self._configuration[f"{PARAMETERS_CONFIG_PREFIX}{name}"] = value

    def resolve(self, parameter: ParameterResource) -> str:
        """
        Return the concrete value of a parameter.

        Raises:
            MissingParameterValueError: If no value is configured and no default exists
        """
        configured = self._configuration.get(f"{PARAMETERS_CONFIG_PREFIX}{parameter.name}")
        if configured is not None:
            return str(configured)

        with self._lock:
            value = self._generated.get(parameter.name)
            if value is None:
                if parameter.default is None:
                    raise MissingParameterValueError(parameter.name)
                value = parameter.default.generate()
                self._generated[parameter.name] = value
                logger.info("Generated value for parameter '%s'", parameter.name)
            return value
