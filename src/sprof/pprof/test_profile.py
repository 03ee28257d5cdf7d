import pytest

from sprof.errors import ProfileValidationError
from sprof.pprof.profile import Function, Line, Location, Mapping, Profile, ProfileSample, ValueType


@pytest.fixture
def profile():
    return Profile(
        time_nanos=1,
        sample_types=[ValueType(type="calls", unit="count")],
        mappings=[Mapping(id=1, has_functions=True)],
        functions=[Function(id=1, name="main.main"), Function(id=2, name="main.run")],
        locations=[
            Location(id=1, mapping_id=1, lines=[Line(function_id=2, line=1)]),
            Location(id=2, mapping_id=1, lines=[Line(function_id=1, line=1)]),
        ],
        samples=[ProfileSample(location_ids=[1, 2], values=[5])],
    )


def test_valid(profile):
    profile.check_valid()


def test_missing_sample_types(profile):
    profile.sample_types = []
    with pytest.raises(ProfileValidationError, match="sample type"):
        profile.check_valid()


def test_value_count_mismatch(profile):
    profile.samples[0].values = [5, 6]
    with pytest.raises(ProfileValidationError, match="mismatch"):
        profile.check_valid()


def test_duplicate_function_id(profile):
    profile.functions[1].id = 1
    with pytest.raises(ProfileValidationError, match="multiple functions"):
        profile.check_valid()


def test_duplicate_location_id(profile):
    profile.locations[1].id = 1
    with pytest.raises(ProfileValidationError, match="multiple locations"):
        profile.check_valid()


def test_zero_id(profile):
    profile.mappings[0].id = 0
    with pytest.raises(ProfileValidationError, match="non-positive id: 0"):
        profile.check_valid()


def test_negative_function_id(profile):
    profile.functions[0].id = -1
    profile.locations[1].lines[0].function_id = -1
    with pytest.raises(ProfileValidationError, match="function with non-positive id: -1"):
        profile.check_valid()


def test_negative_references(profile):
    profile.locations[0].lines[0].function_id = -2
    with pytest.raises(ProfileValidationError, match="unknown function id: -2"):
        profile.check_valid()

    profile.locations[0].lines[0].function_id = 2
    profile.samples[0].location_ids = [-1]
    with pytest.raises(ProfileValidationError, match="unknown location id: -1"):
        profile.check_valid()


def test_dangling_function_reference(profile):
    profile.locations[0].lines[0].function_id = 9
    with pytest.raises(ProfileValidationError, match="unknown function id: 9"):
        profile.check_valid()


def test_dangling_mapping_reference(profile):
    profile.locations[0].mapping_id = 4
    with pytest.raises(ProfileValidationError, match="unknown mapping id: 4"):
        profile.check_valid()


def test_dangling_location_reference(profile):
    profile.samples[0].location_ids.append(3)
    with pytest.raises(ProfileValidationError, match="unknown location id: 3"):
        profile.check_valid()
