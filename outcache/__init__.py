from outcache._async._invalidation import AsyncInvalidationCoordinator as AsyncInvalidationCoordinator
from outcache._async._output_cache import AsyncOutputCache as AsyncOutputCache
from outcache._async._storages import AsyncBaseStore as AsyncBaseStore, AsyncInMemoryStore as AsyncInMemoryStore
from outcache._discovery import (
    discover_read_operations as discover_read_operations,
    parameter_types as parameter_types,
    read_operation as read_operation,
    returns_any_of as returns_any_of,
)
from outcache._exceptions import InvalidKeyContext as InvalidKeyContext, OutputCacheError as OutputCacheError
from outcache._fingerprint import compute_fingerprint as compute_fingerprint
from outcache._headers import Headers as Headers
from outcache._keys import (
    CacheKeyContributor as CacheKeyContributor,
    KeyGenerator as KeyGenerator,
    ResourceIdentity as ResourceIdentity,
    build_base_key as build_base_key,
    build_base_key_from_args as build_base_key_from_args,
    build_variant_key as build_variant_key,
    operation_name as operation_name,
)
from outcache._models import (
    CachedResponse as CachedResponse,
    HandlerOutcome as HandlerOutcome,
    InvalidationReport as InvalidationReport,
    InvalidationRule as InvalidationRule,
    RequestContext as RequestContext,
    StoreResult as StoreResult,
)
from outcache._policies import (
    CacheDirectives as CacheDirectives,
    CachePolicy as CachePolicy,
    Freshness as Freshness,
    FreshnessSpec as FreshnessSpec,
    evaluate as evaluate,
    is_caching_allowed as is_caching_allowed,
)
from outcache._sync._invalidation import InvalidationCoordinator as InvalidationCoordinator
from outcache._sync._output_cache import OutputCache as OutputCache
from outcache._sync._storages import BaseStore as BaseStore, InMemoryStore as InMemoryStore
from outcache._utils import BaseClock as BaseClock, Clock as Clock

__version__ = "0.1.0"

__all__ = (
    ## Keys
    "ResourceIdentity",
    "CacheKeyContributor",
    "KeyGenerator",
    "operation_name",
    "build_base_key",
    "build_base_key_from_args",
    "build_variant_key",
    ## Policies
    "CachePolicy",
    "FreshnessSpec",
    "Freshness",
    "CacheDirectives",
    "evaluate",
    "is_caching_allowed",
    "compute_fingerprint",
    ## Models
    "RequestContext",
    "HandlerOutcome",
    "CachedResponse",
    "StoreResult",
    "InvalidationRule",
    "InvalidationReport",
    ## Headers
    "Headers",
    ## Stores
    "BaseStore",
    "AsyncBaseStore",
    "InMemoryStore",
    "AsyncInMemoryStore",
    ## Pipeline
    "OutputCache",
    "AsyncOutputCache",
    "InvalidationCoordinator",
    "AsyncInvalidationCoordinator",
    ## Discovery
    "read_operation",
    "discover_read_operations",
    "parameter_types",
    "returns_any_of",
    ## Clocks
    "BaseClock",
    "Clock",
    ## Exceptions
    "OutputCacheError",
    "InvalidKeyContext",
)
