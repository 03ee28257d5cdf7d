from sprof.pprof.encoder import ProfileEncoder
from sprof.pprof.profile import (
    Function,
    Line,
    Location,
    Mapping,
    Profile,
    ProfileSample,
    ValueType,
)
from sprof.pprof.writer import read_profile, write_profile

__all__ = [
    "ProfileEncoder",
    "Function",
    "Line",
    "Location",
    "Mapping",
    "Profile",
    "ProfileSample",
    "ValueType",
    "read_profile",
    "write_profile",
]
