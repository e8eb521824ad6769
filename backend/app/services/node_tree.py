"""
Requirement tree checks and GROUP node propagation.

CourseSet leaves are resolved by the allocator; this module derives every GROUP
node's state from its children, post-order. A tree that references a missing node
or loops back on itself is corrupt reference data and raises IntegrityError.
"""
from typing import Dict, List, Set

from app.models.requirement_types import (
    CourseSetNode,
    CourseSetNodeState,
    GroupNode,
    GroupNodeState,
    RequirementDefinition,
)
from app.services.fulfillment_errors import IntegrityError


def _missing_node_error(definition: RequirementDefinition, node_id: str, parent_id: str) -> IntegrityError:
    return IntegrityError(
        f"Requirement {definition.id}: node {parent_id} references missing node {node_id}",
        entity="requirement",
        requirement_id=definition.id,
        node_id=node_id,
    )


def _cycle_error(definition: RequirementDefinition, node_id: str) -> IntegrityError:
    return IntegrityError(
        f"Requirement {definition.id}: cycle detected at node {node_id}",
        entity="requirement",
        requirement_id=definition.id,
        node_id=node_id,
    )


def validate_requirement_tree(definition: RequirementDefinition) -> None:
    """Raise IntegrityError unless every node is acyclic and all child ids exist and are distinct."""
    if definition.root_node_id not in definition.nodes:
        raise IntegrityError(
            f"Requirement {definition.id}: root node {definition.root_node_id} does not exist",
            entity="requirement",
            requirement_id=definition.id,
            node_id=definition.root_node_id,
        )

    done: Set[str] = set()
    visiting: Set[str] = set()

    def visit(node_id: str) -> None:
        if node_id in done:
            return
        if node_id in visiting:
            raise _cycle_error(definition, node_id)
        visiting.add(node_id)
        match definition.nodes[node_id]:
            case GroupNode(children=children):
                if len(set(children)) != len(children):
                    raise IntegrityError(
                        f"Requirement {definition.id}: node {node_id} lists a child more than once",
                        entity="requirement",
                        requirement_id=definition.id,
                        node_id=node_id,
                    )
                for child_id in children:
                    if child_id not in definition.nodes:
                        raise _missing_node_error(definition, child_id, node_id)
                    visit(child_id)
            case CourseSetNode():
                pass
        visiting.discard(node_id)
        done.add(node_id)

    visit(definition.root_node_id)
    for node_id in definition.nodes:
        visit(node_id)


def propagate_group_states(
    definition: RequirementDefinition,
    course_set_states: Dict[str, CourseSetNodeState],
) -> Dict[str, GroupNodeState]:
    """
    Compute the state of every GROUP node, starting from the root.

    Args:
        definition: The requirement tree
        course_set_states: Resolved states of the CourseSet nodes, by node id

    Returns:
        GROUP node states by node id
    """
    group_states: Dict[str, GroupNodeState] = {}
    in_progress: Set[str] = set()

    def is_fulfilled(node_id: str, parent_id: str) -> bool:
        node = definition.nodes.get(node_id)
        match node:
            case GroupNode():
                return resolve(node).is_fulfilled
            case CourseSetNode():
                state = course_set_states.get(node_id)
                if state is None:
                    raise IntegrityError(
                        f"Requirement {definition.id}: course set {node_id} was not resolved",
                        entity="requirement",
                        requirement_id=definition.id,
                        node_id=node_id,
                    )
                return state.is_fulfilled
            case _:
                raise _missing_node_error(definition, node_id, parent_id)

    def resolve(node: GroupNode) -> GroupNodeState:
        if node.node_id in group_states:
            return group_states[node.node_id]
        if node.node_id in in_progress:
            raise _cycle_error(definition, node.node_id)
        in_progress.add(node.node_id)

        counted: List[str] = [
            child_id for child_id in node.children if is_fulfilled(child_id, node.node_id)
        ]
        state = GroupNodeState(
            is_fulfilled=len(counted) >= node.pick,
            fulfilled_count=len(counted),
            counted_child_ids=counted,
        )
        in_progress.discard(node.node_id)
        group_states[node.node_id] = state
        return state

    root = definition.nodes.get(definition.root_node_id)
    if root is None:
        raise IntegrityError(
            f"Requirement {definition.id}: root node {definition.root_node_id} does not exist",
            entity="requirement",
            requirement_id=definition.id,
            node_id=definition.root_node_id,
        )
    # Root first, then groups outside the root's subtree so they get a consistent state too
    for node in [root, *definition.nodes.values()]:
        match node:
            case GroupNode():
                resolve(node)
            case CourseSetNode():
                pass

    return group_states
