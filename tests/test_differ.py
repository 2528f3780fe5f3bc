"""Tests for live vs desired state comparison."""

from stackwright.orchestration import DiffKind, StackSnapshot, StateDiffer


def _diff(live, desired):
    return StateDiffer().diff(live, desired)


def test_identical_snapshots_have_no_diff():
    template = {"Resources": {"Bucket": {"Type": "AWS::S3::Bucket", "Properties": {"Tags": [1, 2]}}}}
    live = StackSnapshot({"Env": "dev"}, template)
    desired = StackSnapshot({"Env": "dev"}, {"Resources": {"Bucket": {"Type": "AWS::S3::Bucket", "Properties": {"Tags": [1, 2]}}}})

    assert _diff(live, desired) is None


def test_changed_parameter():
    changes = _diff(StackSnapshot({"Env": "dev"}, {}), StackSnapshot({"Env": "prod"}, {}))

    assert len(changes) == 1
    change = changes[0]
    assert change.kind is DiffKind.CHANGED
    assert change.path == ("parameters", "Env")
    assert (change.old, change.new) == ("dev", "prod")


def test_added_and_removed_keys():
    changes = _diff(StackSnapshot({"Old": "1"}, {}), StackSnapshot({"New": "2"}, {}))

    kinds = {change.dotted_path: change.kind for change in changes}
    assert kinds == {"parameters.Old": DiffKind.REMOVED, "parameters.New": DiffKind.ADDED}


def test_absent_stack_is_reported_as_added_template():
    template = {"Resources": {}}
    changes = _diff(StackSnapshot({}, None), StackSnapshot({}, template))

    assert len(changes) == 1
    assert changes[0].kind is DiffKind.ADDED
    assert changes[0].path == ("template",)
    assert changes[0].new == template


def test_list_elements_are_compared_by_position():
    live = StackSnapshot({}, {"Outputs": ["a", "b", "c"]})
    desired = StackSnapshot({}, {"Outputs": ["a", "x"]})

    changes = _diff(live, desired)

    assert [(c.kind, c.dotted_path) for c in changes] == [
        (DiffKind.CHANGED, "template.Outputs[1]"),
        (DiffKind.REMOVED, "template.Outputs[2]"),
    ]


def test_type_change_is_a_single_change():
    live = StackSnapshot({}, {"Value": "1"})
    desired = StackSnapshot({}, {"Value": 1})

    changes = _diff(live, desired)

    assert len(changes) == 1
    assert changes[0].kind is DiffKind.CHANGED


def test_nested_change_path():
    live = StackSnapshot({}, {"Resources": {"Queue": {"Properties": {"Delay": 0}}}})
    desired = StackSnapshot({}, {"Resources": {"Queue": {"Properties": {"Delay": 5}}}})

    (change,) = _diff(live, desired)

    assert change.dotted_path == "template.Resources.Queue.Properties.Delay"
