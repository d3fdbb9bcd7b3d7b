"""Workflow state machines: staging, generation, push, setup, init and the top-level run."""

from ai_git.workflow.actors import Actors, Choice, NestedWorkflows
from ai_git.workflow.machine import Cancelled, Done, Failed, Machine, run_machine
from ai_git.workflow.workflow import CLIOptions, WorkflowInput, WorkflowOutput, run_workflow

__all__ = [
    "Actors",
    "Choice",
    "NestedWorkflows",
    "Cancelled",
    "Done",
    "Failed",
    "Machine",
    "run_machine",
    "CLIOptions",
    "WorkflowInput",
    "WorkflowOutput",
    "run_workflow",
]
