"""Approval flow schema: ordered submit / approve / end nodes.

A flow is stored as JSON on the approval definition and copied verbatim
onto each approval request at submission (the snapshot). parse_flow_schema
validates that JSON against FLOW_SCHEMA_JSON_SCHEMA and builds immutable
FlowSchema / FlowNode values the router works with.
"""

from dataclasses import dataclass
from typing import Any

import jsonschema

from plm.domain.enums import ApproverType, FlowNodeType, MultiApprovePolicy
from plm.domain.exceptions import ValidationException

FLOW_SCHEMA_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["nodes"],
    "properties": {
        "nodes": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["type"],
                "properties": {
                    "type": {"enum": FlowNodeType.values()},
                    "name": {"type": "string"},
                    "config": {
                        "type": "object",
                        "properties": {
                            "approver_type": {"enum": ApproverType.values()},
                            "approver_ids": {
                                "type": "array",
                                "items": {"type": "string", "minLength": 1},
                            },
                            "multi_approve": {"enum": MultiApprovePolicy.values()},
                        },
                    },
                },
            },
        }
    },
}


@dataclass(frozen=True)
class FlowNode:
    """One step of an approval flow."""

    index: int
    node_type: FlowNodeType
    name: str
    approver_type: ApproverType | None = None
    approver_ids: tuple[str, ...] = ()
    multi_approve: MultiApprovePolicy = MultiApprovePolicy.ALL

    @property
    def is_approve(self) -> bool:
        return self.node_type is FlowNodeType.APPROVE


@dataclass(frozen=True)
class FlowSchema:
    """Immutable, validated approval flow."""

    nodes: tuple[FlowNode, ...]

    def first_approve_node(self, start_index: int = 0) -> FlowNode | None:
        """Return the first approve node at or after start_index, or None."""
        for node in self.nodes[max(start_index, 0):]:
            if node.is_approve:
                return node
        return None

    def next_approve_node(self, after_index: int) -> FlowNode | None:
        """Return the first approve node strictly after after_index, or None."""
        return self.first_approve_node(after_index + 1)

    def unsupported_policies(self) -> list[FlowNode]:
        """Approve nodes whose multi-approve policy the router cannot execute."""
        return [
            n
            for n in self.nodes
            if n.is_approve and n.multi_approve is not MultiApprovePolicy.ALL
        ]


def parse_flow_schema(raw: dict[str, Any]) -> FlowSchema:
    """Validate raw flow JSON and build a FlowSchema.

    Raises:
        ValidationException: If raw does not match FLOW_SCHEMA_JSON_SCHEMA or
            an approve node has no approver_type.
    """
    try:
        jsonschema.validate(instance=raw, schema=FLOW_SCHEMA_JSON_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ValidationException(f"invalid flow schema: {e.message}", field="flow_schema") from e
    nodes: list[FlowNode] = []
    for index, item in enumerate(raw["nodes"]):
        node_type = FlowNodeType(item["type"])
        config = item.get("config") or {}
        name = item.get("name") or f"{node_type.value}-{index}"
        if node_type is not FlowNodeType.APPROVE:
            nodes.append(FlowNode(index=index, node_type=node_type, name=name))
            continue
        if "approver_type" not in config:
            raise ValidationException(
                f"approve node {index} has no approver_type", field="flow_schema"
            )
        nodes.append(
            FlowNode(
                index=index,
                node_type=node_type,
                name=name,
                approver_type=ApproverType(config["approver_type"]),
                approver_ids=tuple(config.get("approver_ids") or ()),
                multi_approve=MultiApprovePolicy(
                    config.get("multi_approve", MultiApprovePolicy.ALL.value)
                ),
            )
        )
    return FlowSchema(nodes=tuple(nodes))
