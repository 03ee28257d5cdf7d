"""
pprof wire format.

The message classes are built at import time from a descriptor of
perftools.profiles (profile.proto as published with github.com/google/pprof),
so no generated code is checked in.
"""
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from sprof.pprof.profile import Function, Line, Location, Mapping, Profile, ProfileSample, ValueType

_PACKAGE = "perftools.profiles"

_F = descriptor_pb2.FieldDescriptorProto
_UINT64 = _F.TYPE_UINT64
_INT64 = _F.TYPE_INT64
_BOOL = _F.TYPE_BOOL
_STRING = _F.TYPE_STRING

# (message, [(field name, number, type, repeated)]); message-typed fields name the message
_SCHEMA = [
    ("Profile", [
        ("sample_type", 1, "ValueType", True),
        ("sample", 2, "Sample", True),
        ("mapping", 3, "Mapping", True),
        ("location", 4, "Location", True),
        ("function", 5, "Function", True),
        ("string_table", 6, _STRING, True),
        ("drop_frames", 7, _INT64, False),
        ("keep_frames", 8, _INT64, False),
        ("time_nanos", 9, _INT64, False),
        ("duration_nanos", 10, _INT64, False),
        ("period_type", 11, "ValueType", False),
        ("period", 12, _INT64, False),
        ("comment", 13, _INT64, True),
        ("default_sample_type", 14, _INT64, False),
    ]),
    ("ValueType", [
        ("type", 1, _INT64, False),
        ("unit", 2, _INT64, False),
    ]),
    ("Sample", [
        ("location_id", 1, _UINT64, True),
        ("value", 2, _INT64, True),
        ("label", 3, "Label", True),
    ]),
    ("Label", [
        ("key", 1, _INT64, False),
        ("str", 2, _INT64, False),
        ("num", 3, _INT64, False),
        ("num_unit", 4, _INT64, False),
    ]),
    ("Mapping", [
        ("id", 1, _UINT64, False),
        ("memory_start", 2, _UINT64, False),
        ("memory_limit", 3, _UINT64, False),
        ("file_offset", 4, _UINT64, False),
        ("filename", 5, _INT64, False),
        ("build_id", 6, _INT64, False),
        ("has_functions", 7, _BOOL, False),
        ("has_filenames", 8, _BOOL, False),
        ("has_line_numbers", 9, _BOOL, False),
        ("has_inline_frames", 10, _BOOL, False),
    ]),
    ("Location", [
        ("id", 1, _UINT64, False),
        ("mapping_id", 2, _UINT64, False),
        ("address", 3, _UINT64, False),
        ("line", 4, "Line", True),
        ("is_folded", 5, _BOOL, False),
    ]),
    ("Line", [
        ("function_id", 1, _UINT64, False),
        ("line", 2, _INT64, False),
        ("column", 3, _INT64, False),
    ]),
    ("Function", [
        ("id", 1, _UINT64, False),
        ("name", 2, _INT64, False),
        ("system_name", 3, _INT64, False),
        ("filename", 4, _INT64, False),
        ("start_line", 5, _INT64, False),
    ]),
]


def _build_messages() -> dict:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="sprof/profile.proto",
        package=_PACKAGE,
        syntax="proto3",
    )
    for message_name, fields in _SCHEMA:
        message = file_proto.message_type.add(name=message_name)
        for field_name, number, field_type, repeated in fields:
            field = message.field.add(
                name=field_name,
                number=number,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if isinstance(field_type, str):
                field.type = _F.TYPE_MESSAGE
                field.type_name = f".{_PACKAGE}.{field_type}"
            else:
                field.type = field_type

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return {
        message_name: message_factory.GetMessageClass(
            pool.FindMessageTypeByName(f"{_PACKAGE}.{message_name}"))
        for message_name, _ in _SCHEMA
    }


_MESSAGES = _build_messages()
ProfileMessage = _MESSAGES["Profile"]


class _StringTable:
    def __init__(self):
        self.strings: list[str] = [""]
        self._index: dict[str, int] = {"": 0}

    def add(self, s: str) -> int:
        if s not in self._index:
            self._index[s] = len(self.strings)
            self.strings.append(s)
        return self._index[s]


def to_message(profile: Profile):
    """Convert a Profile into a perftools.profiles.Profile message."""
    strings = _StringTable()
    msg = ProfileMessage(time_nanos=profile.time_nanos)

    for vt in profile.sample_types:
        msg.sample_type.add(type=strings.add(vt.type), unit=strings.add(vt.unit))

    for sample in profile.samples:
        msg.sample.add(location_id=sample.location_ids, value=sample.values)

    for mapping in profile.mappings:
        msg.mapping.add(
            id=mapping.id,
            filename=strings.add(mapping.filename),
            has_functions=mapping.has_functions,
        )

    for location in profile.locations:
        loc = msg.location.add(id=location.id, mapping_id=location.mapping_id)
        for line in location.lines:
            loc.line.add(function_id=line.function_id, line=line.line)

    for function in profile.functions:
        msg.function.add(
            id=function.id,
            name=strings.add(function.name),
            system_name=strings.add(function.system_name),
            filename=strings.add(function.filename),
            start_line=function.start_line,
        )

    msg.string_table.extend(strings.strings)
    return msg


def from_message(msg) -> Profile:
    """Convert a perftools.profiles.Profile message back into a Profile."""
    strings = list(msg.string_table)
    return Profile(
        time_nanos=msg.time_nanos,
        sample_types=[
            ValueType(type=strings[vt.type], unit=strings[vt.unit]) for vt in msg.sample_type
        ],
        mappings=[
            Mapping(id=m.id, filename=strings[m.filename], has_functions=m.has_functions)
            for m in msg.mapping
        ],
        functions=[
            Function(
                id=f.id,
                name=strings[f.name],
                system_name=strings[f.system_name],
                filename=strings[f.filename],
                start_line=f.start_line,
            )
            for f in msg.function
        ],
        locations=[
            Location(
                id=loc.id,
                mapping_id=loc.mapping_id,
                lines=[Line(function_id=ln.function_id, line=ln.line) for ln in loc.line],
            )
            for loc in msg.location
        ],
        samples=[
            ProfileSample(location_ids=list(s.location_id), values=list(s.value))
            for s in msg.sample
        ],
    )
