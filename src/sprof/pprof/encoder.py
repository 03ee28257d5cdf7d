import logging
import time
from typing import Optional

from sprof.pprof.profile import Function, Line, Location, Mapping, Profile, ProfileSample, ValueType
from sprof.profiler import Sample

logger = logging.getLogger(__name__)

# static data: no real source positions
PLACEHOLDER_FILENAME = "main.py"
PLACEHOLDER_LINE = 1


class ProfileEncoder:
    """
    Turn synthesized samples into a pprof profile.

    Every frame occurrence gets its own Function and Location record; nothing
    is deduplicated across or within samples. Ids start at 1 and are never
    reused by the same encoder.
    """
    def __init__(self):
        self._function_id = 1
        self._location_id = 1
        self._mapping = Mapping(id=1, has_functions=True)

    def encode(self, samples: list[Sample], time_nanos: Optional[int] = None) -> Profile:
        if time_nanos is None:
            time_nanos = time.time_ns()
        profile = Profile(
            time_nanos=time_nanos,
            sample_types=[ValueType(type="calls", unit="count")],
            mappings=[self._mapping],
        )

        for s in samples:
            sample = ProfileSample(location_ids=[], values=[s.count])
            for f in reversed(s.frames):
                function = Function(
                    id=self._next_function_id(),
                    name=str(f),
                    filename=PLACEHOLDER_FILENAME,
                )
                profile.functions.append(function)

                location = Location(
                    id=self._next_location_id(),
                    mapping_id=self._mapping.id,
                    lines=[Line(function_id=function.id, line=PLACEHOLDER_LINE)],
                )
                profile.locations.append(location)
                sample.location_ids.append(location.id)

            profile.samples.append(sample)

        logger.debug(
            f"Encoded {len(profile.samples)} samples into {len(profile.functions)} functions "
            f"and {len(profile.locations)} locations")
        return profile

    def _next_function_id(self) -> int:
        function_id = self._function_id
        self._function_id += 1
        return function_id

    def _next_location_id(self) -> int:
        location_id = self._location_id
        self._location_id += 1
        return location_id
