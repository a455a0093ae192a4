"""
Request signing for the Remember The Milk API.
"""

from __future__ import annotations

import hashlib
from typing import Mapping


def sign(api_key: str, api_secret: str, params: Mapping[str, str]) -> str:
    """
    Compute the ``api_sig`` value for a set of request parameters.

    Keys are sorted before concatenation, so the result does not depend on
    the order in which ``params`` was built.

    Args:
        api_key: RTM API key
        api_secret: Shared secret issued with the API key
        params: Request parameters, excluding ``api_key`` and ``api_sig``

    Returns:
        32 character lowercase hex MD5 digest
    """
    joined = "".join(f"{key}{params[key]}" for key in sorted(params))
    payload = f"{api_secret}api_key{api_key}{joined}"
    return hashlib.md5(payload.encode("utf-8")).hexdigest()
