"""Type aliases for vectorbridge.

This module provides reusable type definitions shared by the filter
translator and the adapters.
"""

from typing import Any, Dict, Mapping, Union

# Scalar unit of comparison in every filter representation
FilterValue = Union[bool, int, float, str, None]

# Point identifiers accepted by the supported backends
PointId = Union[str, int]

# Partial payload merged by update_payload
Payload = Dict[str, Any]

# Anything a caller may hand to the translator or an adapter. Raw mappings
# are coerced into StructuredFilter / SimpleFilter at the API boundary.
CanonicalFilterInput = Union["StructuredFilter", "SimpleFilter", str, Mapping[str, Any], None]
