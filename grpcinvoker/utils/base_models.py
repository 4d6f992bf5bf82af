# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/utils/base_models.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

Base model utilities.

Shared pydantic base class for invocation results and descriptor schemas.
Python attributes stay snake_case while serialized output is camelCase.
"""

# Standard
from typing import Any, Dict

# Third-Party
from pydantic import BaseModel, ConfigDict


def to_camel_case(s: str) -> str:
    """Convert a string from snake_case to camelCase.

    Args:
        s (str): The string to be converted, which is assumed to be in snake_case.

    Returns:
        str: The string converted to camelCase.

    Examples:
        >>> to_camel_case("request_type")
        'requestType'
        >>> to_camel_case("one_of_fields")
        'oneOfFields'
        >>> to_camel_case("alreadyCamel")
        'alreadyCamel'
        >>> to_camel_case("")
        ''
        >>> to_camel_case("elapsed_ms")
        'elapsedMs'
    """
    return "".join(word.capitalize() if i else word for i, word in enumerate(s.split("_")))


class BaseModelWithConfigDict(BaseModel):
    """Base model for serializable gRPC invoker types.

    Provides:
    - Automatic conversion from snake_case to camelCase for output
    - Populate by name for flexible field naming
    - Enum values stored as plain values
    """

    model_config = ConfigDict(
        alias_generator=to_camel_case,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    def to_dict(self, use_alias: bool = True) -> Dict[str, Any]:
        """Convert the model instance into a dictionary representation.

        Args:
            use_alias (bool): Whether to emit camelCase keys (default is True).

        Returns:
            Dict[str, Any]: Plain dictionary with nested models converted recursively.

        Examples:
            >>> class Sample(BaseModelWithConfigDict):
            ...     request_type: str
            >>> Sample(request_type="user.LoginReq").to_dict()
            {'requestType': 'user.LoginReq'}
        """
        return self.model_dump(by_alias=use_alias)
