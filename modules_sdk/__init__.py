"""
modules_sdk
───────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from modules_sdk.tier0_core.identity import (
    get_current_module_name,
    get_current_version_name,
    get_current_instance_id,
    IdentityAccessor,
    EnvIdentity,
    StaticIdentity,
)
from modules_sdk.tier0_core.logging import get_logger
from modules_sdk.tier0_core.errors import (
    ModulesError,
    InvalidArgumentError,
    UnknownModuleError,
    NoDefaultVersionError,
    UnsupportedOperationError,
    InstanceNotFoundError,
    TransientError,
    UnexpectedStateError,
    ConfigurationError,
)
from modules_sdk.tier0_core.config import get_config, ModulesConfig

from modules_sdk.tier3_platform.backends import (
    ModulesBackend,
    VersionDetail,
    ServingStatus,
    InMemoryBackend,
    RpcBackend,
    AdminApiBackend,
)
from modules_sdk.tier3_platform.traffic import select_default_version
from modules_sdk.tier3_platform.hostname import HostnameResolver
from modules_sdk.tier3_platform.modules import (
    ModulesService,
    get_service,
    get_modules,
    get_versions,
    get_default_version,
    get_num_instances,
    set_num_instances,
    start_version,
    stop_version,
    get_hostname,
)

__version__ = "0.1.0"
__all__ = [
    # identity
    "get_current_module_name", "get_current_version_name", "get_current_instance_id",
    "IdentityAccessor", "EnvIdentity", "StaticIdentity",
    # logging
    "get_logger",
    # errors
    "ModulesError", "InvalidArgumentError", "UnknownModuleError",
    "NoDefaultVersionError", "UnsupportedOperationError", "InstanceNotFoundError",
    "TransientError", "UnexpectedStateError", "ConfigurationError",
    # config
    "get_config", "ModulesConfig",
    # backends
    "ModulesBackend", "VersionDetail", "ServingStatus",
    "InMemoryBackend", "RpcBackend", "AdminApiBackend",
    # resolution
    "select_default_version", "HostnameResolver",
    # operations
    "ModulesService", "get_service", "get_modules", "get_versions",
    "get_default_version", "get_num_instances", "set_num_instances",
    "start_version", "stop_version", "get_hostname",
]
