from pydantic import BaseModel

from sprof.errors import ProfileValidationError


class ValueType(BaseModel):
    type: str
    unit: str


class Mapping(BaseModel):
    id: int
    filename: str = ""
    has_functions: bool = False


class Function(BaseModel):
    id: int
    name: str
    system_name: str = ""
    filename: str = ""
    start_line: int = 0


class Line(BaseModel):
    function_id: int
    line: int


class Location(BaseModel):
    id: int
    mapping_id: int
    lines: list[Line]


class ProfileSample(BaseModel):
    # leaf frame first
    location_ids: list[int]
    values: list[int]


class Profile(BaseModel):
    time_nanos: int
    sample_types: list[ValueType]
    mappings: list[Mapping] = []
    functions: list[Function] = []
    locations: list[Location] = []
    samples: list[ProfileSample] = []

    def check_valid(self) -> None:
        """
        Check that every id is unique and non-zero and that every reference
        between samples, locations, functions and mappings resolves.

        Raises:
            ProfileValidationError: on the first problem found
        """
        if not self.sample_types:
            raise ProfileValidationError("missing sample type information")

        n = len(self.sample_types)
        for sample in self.samples:
            if len(sample.values) != n:
                raise ProfileValidationError(
                    f"mismatch: sample has {len(sample.values)} values vs. {n} types")

        mappings = _unique_ids("mapping", self.mappings)
        functions = _unique_ids("function", self.functions)
        locations = _unique_ids("location", self.locations)

        for location in self.locations:
            if location.mapping_id and location.mapping_id not in mappings:
                raise ProfileValidationError(
                    f"location id: {location.id} has unknown mapping id: {location.mapping_id}")
            for line in location.lines:
                if line.function_id not in functions:
                    raise ProfileValidationError(
                        f"location id: {location.id} has unknown function id: {line.function_id}")

        for sample in self.samples:
            for location_id in sample.location_ids:
                if location_id not in locations:
                    raise ProfileValidationError(
                        f"sample references unknown location id: {location_id}")


def _unique_ids(kind: str, records: list) -> set[int]:
    ids: set[int] = set()
    for record in records:
        if record.id <= 0:
            raise ProfileValidationError(f"found {kind} with non-positive id: {record.id}")
        if record.id in ids:
            raise ProfileValidationError(f"multiple {kind}s with same id: {record.id}")
        ids.add(record.id)
    return ids
