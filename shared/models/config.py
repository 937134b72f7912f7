from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Declares one environment setting a backend client depends on.

    Clients return a list of these from ``_get_required_config()``; the base
    client reads every entry once at construction so that a misconfigured
    store or index fails fast instead of on the first request.

    Attributes:
        env_key (str): Key without the "<TYPE>_<ENGINE>_" prefix, e.g. "CONTACT_POINTS".
        val_type (str): One of "string", "number", "bool", "list".
        default (str | int | float | bool | list | None): Fallback value. None marks the setting as required.
    """

    env_key: str
    val_type: Literal["string", "number", "bool", "list"] = "string"
    default: str | int | float | bool | list | None = None
