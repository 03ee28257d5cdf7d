import os

from pydantic import BaseModel, ConfigDict, Field

MAX_DEPTH = 8
# the walk recurses once per frame
MAX_DEPTH_LIMIT = 64

ENV_PREFIX = "SPROF_"


class ProfileConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_depth: int = Field(default=MAX_DEPTH, ge=1, le=MAX_DEPTH_LIMIT)
    entry: str = Field(default="main", min_length=1)


def parse_config_string(config_string: str) -> dict:
    """
    Parse a configuration string into a dictionary.

    Args:
        config_string: String in format "key1=value1 key2=value2"

    Returns:
        Dictionary with parsed key-value pairs

    Examples:
        >>> parse_config_string("max_depth=4 entry=run")
        {'max_depth': '4', 'entry': 'run'}
    """
    config_dict = {}
    if not config_string:
        return config_dict

    pairs = config_string.strip().split()
    for pair in pairs:
        if '=' in pair:
            key, value = pair.split('=', 1)
            config_dict[key.strip()] = value.strip()

    return config_dict


def load_config(config_string: str = "", environ: dict | None = None) -> ProfileConfig:
    """
    Build the profile configuration.

    Values given in config_string win over SPROF_* environment variables,
    which win over the defaults.
    """
    if environ is None:
        environ = os.environ
    values = {}
    for key in ProfileConfig.model_fields:
        env_value = environ.get(ENV_PREFIX + key.upper())
        if env_value:
            values[key] = env_value
    values.update(parse_config_string(config_string))
    return ProfileConfig(**values)
