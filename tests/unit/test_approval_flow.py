import pytest

from plm.domain.entities.approval_flow import parse_flow_schema
from plm.domain.enums import ApprovalDefinitionStatus, ApproverType, FlowNodeType, MultiApprovePolicy
from plm.domain.exceptions import (
    GuardViolationException,
    ResourceNotFoundException,
    ValidationException,
)

FLOW = {
    "nodes": [
        {"type": "submit"},
        {
            "type": "approve",
            "name": "Quality",
            "config": {"approver_type": "designated", "approver_ids": ["q1"]},
        },
        {"type": "approve", "config": {"approver_type": "submitter", "multi_approve": "any"}},
        {"type": "end"},
    ]
}


def test_parse_builds_indexed_nodes():
    flow = parse_flow_schema(FLOW)

    assert [n.node_type for n in flow.nodes] == [
        FlowNodeType.SUBMIT,
        FlowNodeType.APPROVE,
        FlowNodeType.APPROVE,
        FlowNodeType.END,
    ]
    quality = flow.nodes[1]
    assert quality.index == 1
    assert quality.name == "Quality"
    assert quality.approver_type is ApproverType.DESIGNATED
    assert quality.approver_ids == ("q1",)
    assert quality.multi_approve is MultiApprovePolicy.ALL
    assert flow.nodes[2].name == "approve-2"


def test_approve_node_navigation():
    flow = parse_flow_schema(FLOW)

    assert flow.first_approve_node(0).index == 1
    assert flow.next_approve_node(1).index == 2
    assert flow.next_approve_node(2) is None
    assert flow.nodes[3].node_type is FlowNodeType.END
    assert [n.index for n in flow.unsupported_policies()] == [2]


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"nodes": []},
        {"nodes": [{"type": "fork"}]},
        {"nodes": [{"type": "approve", "config": {"approver_type": "robot"}}]},
        {"nodes": [{"type": "approve", "config": {}}]},
    ],
)
def test_malformed_flows_are_rejected(raw):
    with pytest.raises(ValidationException) as exc_info:
        parse_flow_schema(raw)
    assert exc_info.value.details == {"field": "flow_schema"}


async def test_definition_needs_an_approve_node(harness):
    with pytest.raises(ValidationException):
        await harness.definitions.create_definition(
            "EMPTY", "Empty", {"nodes": [{"type": "submit"}, {"type": "end"}]}
        )


async def test_definition_is_created_as_draft_and_published_once(harness):
    definition = await harness.definitions.create_definition("FAI", "First article", FLOW)
    assert definition.status is ApprovalDefinitionStatus.DRAFT

    published = await harness.definitions.publish_definition(definition.id)
    assert published.status is ApprovalDefinitionStatus.PUBLISHED

    with pytest.raises(GuardViolationException):
        await harness.definitions.publish_definition(definition.id)


async def test_publish_unknown_definition(harness):
    with pytest.raises(ResourceNotFoundException):
        await harness.definitions.publish_definition("def-missing")


async def test_update_definition_changes_name_and_flow(harness):
    definition = await harness.definitions.create_definition("FAI", "First article", FLOW)
    new_flow = {
        "nodes": [
            {"type": "submit"},
            {"type": "approve", "config": {"approver_type": "submitter"}},
            {"type": "end"},
        ]
    }

    renamed = await harness.definitions.update_definition(definition.id, name="FAI v2")
    assert (renamed.name, renamed.flow_schema) == ("FAI v2", FLOW)

    updated = await harness.definitions.update_definition(definition.id, flow_schema=new_flow)
    assert updated.flow_schema == new_flow
    assert (await harness.definitions.get_definition(definition.id)).name == "FAI v2"


async def test_update_definition_validates_flow(harness):
    definition = await harness.definitions.create_definition("FAI", "First article", FLOW)

    with pytest.raises(ValidationException):
        await harness.definitions.update_definition(
            definition.id, flow_schema={"nodes": [{"type": "submit"}, {"type": "end"}]}
        )

    assert (await harness.definitions.get_definition(definition.id)).flow_schema == FLOW


async def test_update_unknown_definition(harness):
    with pytest.raises(ResourceNotFoundException):
        await harness.definitions.update_definition("def-missing", name="x")


async def test_unpublish_returns_definition_to_draft(harness):
    definition = await harness.definitions.create_definition("FAI", "First article", FLOW)

    with pytest.raises(GuardViolationException):
        await harness.definitions.unpublish_definition(definition.id)

    await harness.definitions.publish_definition(definition.id)
    draft = await harness.definitions.unpublish_definition(definition.id)

    assert draft.status is ApprovalDefinitionStatus.DRAFT
    assert await harness.definitions.list_definitions(ApprovalDefinitionStatus.PUBLISHED) == []
    assert [d.id for d in await harness.definitions.list_definitions()] == [definition.id]
