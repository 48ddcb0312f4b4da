"""Agent nodes module."""

from smart_postgres.agents.nodes.classifier import classifier_node
from smart_postgres.agents.nodes.context import context_node
from smart_postgres.agents.nodes.executor import executor_node
from smart_postgres.agents.nodes.explainer import explainer_node
from smart_postgres.agents.nodes.input_elicitor import input_elicitor_node
from smart_postgres.agents.nodes.result_validator import result_validator_node
from smart_postgres.agents.nodes.sql_generator import sql_generator_node
from smart_postgres.agents.nodes.validator import validator_node

__all__ = [
    "context_node",
    "classifier_node",
    "explainer_node",
    "input_elicitor_node",
    "sql_generator_node",
    "validator_node",
    "executor_node",
    "result_validator_node",
]
