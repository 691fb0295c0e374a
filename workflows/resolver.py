"""
Parameter Resolver

Turns a node's parameter mappings into the concrete argument list of its
script, reading outputs of nodes that already ran.
"""

from typing import Callable, List, Mapping, Optional

from script_tools.executor.utils import format_argument
from script_tools.models import Parameter, Script

from .definition import ConstantMapping, OutputMapping, UserInputMapping, WorkflowNode
from .state import NodeOutput

# Supplies the value of a userInput mapping; returning None keeps the declared default
UserInputHook = Callable[[Parameter, WorkflowNode], Optional[str]]


def default_user_input(parameter: Parameter, node: WorkflowNode) -> Optional[str]:
    """Resolve user input to the parameter's declared default."""
    return parameter.default_value


class ParameterResolver:
    """
    Computes node arguments from parameter mappings.

    Resolution is a pure function of the node, its script and the outputs
    collected so far; the resolver keeps no state between calls.
    """

    def __init__(self, user_input_hook: Optional[UserInputHook] = None):
        """
        Initialize the resolver.

        Args:
            user_input_hook: Supplies values for userInput mappings
                (default: the parameter's declared default)
        """
        self.user_input_hook = user_input_hook or default_user_input

    def resolve_value(
        self,
        parameter: Parameter,
        node: WorkflowNode,
        node_outputs: Mapping[str, NodeOutput],
    ) -> str:
        """Resolve one parameter to its unquoted value."""
        value = parameter.default_value or ""
        mapping = node.parameter_mappings.get(parameter.name)

        if isinstance(mapping, ConstantMapping):
            value = mapping.value
        elif isinstance(mapping, OutputMapping):
            source = node_outputs.get(mapping.node_id)
            if source is not None:
                value = source.channel_value(mapping.output_type)
        elif isinstance(mapping, UserInputMapping):
            supplied = self.user_input_hook(parameter, node)
            if supplied is not None:
                value = supplied

        return value

    def resolve_values(
        self,
        node: WorkflowNode,
        script: Script,
        node_outputs: Mapping[str, NodeOutput],
    ) -> List[str]:
        """Resolve every declared parameter of the script, without quoting."""
        return [
            self.resolve_value(parameter, node, node_outputs)
            for parameter in script.parameters
        ]

    def resolve(
        self,
        node: WorkflowNode,
        script: Script,
        node_outputs: Mapping[str, NodeOutput],
    ) -> List[str]:
        """
        Resolve the process arguments for a node.

        Args:
            node: Node being executed
            script: Script the node runs
            node_outputs: Outputs of nodes that already finished, by node id

        Returns:
            One argument per declared parameter, in declared order
        """
        return [
            format_argument(parameter, value)
            for parameter, value in zip(
                script.parameters, self.resolve_values(node, script, node_outputs)
            )
        ]
