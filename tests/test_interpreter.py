"""
Tests for the workflow state machine: sequencing, branching, loops,
prompts, cancellation and sub-workflows.
"""

import asyncio

import pytest

from hubflow.engine.parser import parse_workflow
from hubflow.models import ExecutionStatus, SSEEventType, StepStatus
from hubflow.workflow import WorkflowInterpreter

from conftest import events_of, terminal_event, wait_for_prompt


BRANCHING = """
nodes:
  n1: {type: set, name: x, value: "1"}
  n2: {type: if, condition: "{{x}} > 0"}
  n3: {type: set, name: msg, value: pos}
  n4: {type: set, name: msg, value: neg}
edges:
  - {from: n1, to: n2}
  - {from: n2, to: n3, label: "true"}
  - {from: n2, to: n4, label: "false"}
"""

COUNTER = """
nodes:
  - id: init
    type: variable
    name: i
    value: 0
  - id: loop
    type: while
    condition: "{{i}} < 3"
    trueNext: inc
    falseNext: done
  - id: inc
    type: set
    name: i
    value: "{{i}} + 1"
    next: loop
  - id: done
    type: variable
    name: finished
    value: "true"
"""


def step_ids(execution):
    return [step.node_id for step in execution.steps]


class TestSequencing:

    async def test_branch_follows_true_edge(self, run):
        execution = await run(BRANCHING)

        assert execution.status == ExecutionStatus.COMPLETED
        assert step_ids(execution) == ["n1", "n2", "n3"]
        assert execution.variables["msg"] == "pos"

    async def test_branch_follows_false_edge(self, run):
        execution = await run(BRANCHING.replace('value: "1"', 'value: "-1"'))

        assert step_ids(execution) == ["n1", "n2", "n4"]
        assert execution.variables["msg"] == "neg"

    async def test_complete_event_carries_variables(self, run):
        execution = await run(BRANCHING)

        event = terminal_event(execution)
        assert event.type == SSEEventType.COMPLETE
        assert event.data["variables"] == {"x": 1, "msg": "pos"}

    async def test_one_log_event_per_step(self, run):
        execution = await run(BRANCHING)

        logs = events_of(execution, SSEEventType.LOG)
        assert [e.data["step"]["nodeId"] for e in logs] == ["n1", "n2", "n3"]
        assert all(e.data["step"]["status"] == "success" for e in logs)

    async def test_status_running_comes_first(self, run):
        execution = await run(BRANCHING)

        first = events_of(execution)[0]
        assert first.type == SSEEventType.STATUS
        assert first.data == {"status": "running"}

    async def test_initial_variables_are_visible(self, run):
        execution = await run(
            "nodes:\n  a: {type: set, name: greeting, value: 'Hello {{name}}'}",
            variables={"name": "Ada"},
        )

        assert execution.variables["greeting"] == "Hello Ada"

    async def test_set_mutates_only_its_target(self, run):
        execution = await run(
            "nodes:\n  a: {type: set, name: total, value: '{{a}} + {{b}}'}",
            variables={"a": 2, "b": 3, "other": "keep"},
        )

        assert execution.variables.snapshot() == {"a": 2, "b": 3, "other": "keep", "total": 5}

    async def test_unresolved_template_becomes_empty(self, run):
        execution = await run("nodes:\n  a: {type: set, name: msg, value: '[{{nobody}}]'}")

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.variables["msg"] == "[]"

    async def test_braces_in_variable_values_are_copied_verbatim(self, run):
        execution = await run(
            "nodes:\n  a: {type: variable, name: out, value: 'Copy of: {{answer}}'}",
            variables={"answer": "Use {{#each items}} in Handlebars"},
        )

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.variables["out"] == "Copy of: Use {{#each items}} in Handlebars"

    async def test_variable_keeps_numeric_looking_text(self, run):
        execution = await run(
            "nodes:\n"
            "  a: {type: variable, name: zip, value: '02134'}\n"
            "  b: {type: variable, name: price, value: '1.50'}\n"
            "  c: {type: variable, name: count, value: '42'}\n"
        )

        assert execution.variables["zip"] == "02134"
        assert execution.variables["price"] == "1.50"
        assert execution.variables["count"] == 42

    async def test_steps_record_resolved_input(self, run):
        execution = await run(
            "nodes:\n  a: {type: variable, name: v, value: 'x{{n}}'}",
            variables={"n": 7},
        )

        assert execution.steps[0].input == {"name": "v", "value": "x7"}


class TestLoops:

    async def test_while_loops_until_condition_fails(self, run):
        execution = await run(COUNTER)

        assert execution.variables["i"] == 3
        assert execution.variables["finished"] == "true"
        assert step_ids(execution).count("loop") == 4
        assert step_ids(execution).count("inc") == 3
        assert step_ids(execution)[-1] == "done"

    async def test_while_iteration_limit(self, registry, broker, services, store):
        interpreter = WorkflowInterpreter(registry, broker, services, max_loop_iterations=5)
        workflow = parse_workflow("""
nodes:
  - id: loop
    type: while
    condition: "1 == 1"
    trueNext: body
  - id: body
    type: set
    name: n
    value: "{{n}} + 1"
    next: loop
""")
        execution = store.get(store.create("wf", workflow, variables={"n": 0}))

        status = await interpreter.run(execution)

        assert status == ExecutionStatus.ERROR
        event = terminal_event(execution)
        assert event.type == SSEEventType.ERROR
        assert "maximum of 5 iterations" in event.data["message"]
        assert event.data["nodeId"] == "loop"
        assert execution.variables["n"] == 5

    async def test_total_visit_limit(self, registry, broker, services, store):
        interpreter = WorkflowInterpreter(registry, broker, services, max_steps=3)
        text = "nodes:\n" + "".join(f"  - {{id: v{i}, type: variable, name: v{i}, value: {i}}}\n" for i in range(5))
        execution = store.get(store.create("wf", parse_workflow(text)))

        await interpreter.run(execution)

        assert execution.status == ExecutionStatus.ERROR
        assert "maximum of 3 node visits" in terminal_event(execution).data["message"]
        assert step_ids(execution) == ["v0", "v1", "v2"]


class TestFailures:

    async def test_missing_branch_edge(self, run):
        execution = await run("""
nodes:
  check: {type: if, condition: "1 > 2"}
  yes_path: {type: set, name: a, value: b}
edges:
  - {from: check, to: yes_path, label: "true"}
""")

        assert execution.status == ExecutionStatus.ERROR
        event = terminal_event(execution)
        assert event.data["nodeId"] == "check"
        assert "No 'false' edge" in event.data["message"]

    async def test_node_failure_records_error_step(self, run):
        execution = await run(
            """
nodes:
  - {id: before, type: variable, name: raw, value: "not json"}
  - {id: parse, type: json, source: raw, saveTo: data}
  - {id: after, type: variable, name: never, value: "1"}
""",
        )

        assert execution.status == ExecutionStatus.ERROR
        assert step_ids(execution) == ["before", "parse"]
        assert execution.steps[-1].status == StepStatus.ERROR
        assert execution.steps[-1].error
        assert "never" not in execution.variables
        assert terminal_event(execution).data["nodeId"] == "parse"

    async def test_exactly_one_terminal_event(self, run):
        execution = await run("nodes:\n  - {id: p, type: json, source: missing, saveTo: out}")

        terminal = [e for e in events_of(execution) if e.type.is_terminal]
        assert len(terminal) == 1
        assert terminal[0].type == SSEEventType.ERROR


class TestPrompts:

    PROMPTED = """
nodes:
  - {id: ask, type: prompt-value, title: "Your name?", saveTo: name}
  - {id: greet, type: set, name: greeting, value: "Hello {{name}}"}
"""

    async def test_prompt_suspends_until_response(self, store, interpreter, broker):
        execution = store.get(store.create("wf", parse_workflow(self.PROMPTED)))
        task = asyncio.create_task(interpreter.run(execution))

        pending = await wait_for_prompt(broker, execution.execution_id)
        assert pending.title == "Your name?"
        assert pending.node_id == "ask"
        assert execution.status == ExecutionStatus.WAITING_PROMPT
        assert [e.type for e in events_of(execution)] == [
            SSEEventType.STATUS,
            SSEEventType.PROMPT_REQUEST,
            SSEEventType.STATUS,
        ]
        assert events_of(execution)[-1].data == {"status": "waiting-prompt"}

        broker.resolve(execution.execution_id, "Ada")
        await asyncio.wait_for(task, timeout=2)

        assert execution.variables["greeting"] == "Hello Ada"
        types = [e.type for e in events_of(execution)]
        assert types[3] == SSEEventType.STATUS
        assert events_of(execution)[3].data == {"status": "running"}
        assert types[-1] == SSEEventType.COMPLETE

    async def test_null_response_fails_run(self, store, interpreter, broker):
        execution = store.get(store.create("wf", parse_workflow(self.PROMPTED)))
        task = asyncio.create_task(interpreter.run(execution))

        await wait_for_prompt(broker, execution.execution_id)
        broker.resolve(execution.execution_id, None)
        await asyncio.wait_for(task, timeout=2)

        assert execution.status == ExecutionStatus.ERROR
        assert terminal_event(execution).data["message"] == "Input cancelled by user"
        assert "greeting" not in execution.variables


class TestCancellation:

    async def test_cancel_while_waiting_on_prompt(self, store, interpreter, broker):
        workflow = parse_workflow("""
nodes:
  - {id: a, type: variable, name: a, value: "1"}
  - {id: ask, type: prompt-value, saveTo: answer}
  - {id: b, type: variable, name: b, value: "2"}
""")
        execution = store.get(store.create("wf", workflow))
        execution.add_cancel_hook(lambda reason: broker.cancel(execution.execution_id, reason))
        task = asyncio.create_task(interpreter.run(execution))

        await wait_for_prompt(broker, execution.execution_id)
        store.cancel(execution.execution_id, "Stopped by test")
        await asyncio.wait_for(task, timeout=2)

        assert execution.status == ExecutionStatus.CANCELLED
        assert step_ids(execution) == ["a"]
        event = terminal_event(execution)
        assert event.type == SSEEventType.CANCELLED
        assert event.data == {"reason": "Stopped by test"}

        types = [e.type for e in events_of(execution)]
        waiting = max(i for i, t in enumerate(types) if t == SSEEventType.STATUS)
        assert SSEEventType.LOG not in types[waiting:]

    async def test_cancel_interrupts_sleep(self, store, interpreter):
        workflow = parse_workflow("""
nodes:
  - {id: a, type: variable, name: a, value: "1"}
  - {id: nap, type: sleep, duration: "60000"}
  - {id: b, type: variable, name: b, value: "2"}
""")
        execution = store.get(store.create("wf", workflow))
        task = asyncio.create_task(interpreter.run(execution))

        await asyncio.sleep(0.05)
        store.cancel(execution.execution_id, "Enough")
        await asyncio.wait_for(task, timeout=2)

        assert execution.status == ExecutionStatus.CANCELLED
        assert step_ids(execution) == ["a"]
        assert "b" not in execution.variables

    async def test_cancel_before_start(self, store, interpreter):
        execution = store.get(store.create("wf", parse_workflow(BRANCHING)))
        store.cancel(execution.execution_id, "Too late")

        await interpreter.run(execution)

        assert execution.status == ExecutionStatus.CANCELLED
        assert execution.steps == []


class TestSubWorkflows:

    CHILD = """
nodes:
  - {id: double, type: set, name: doubled, value: "{{seed}} * 2"}
  - {id: scratch, type: variable, name: scratch, value: temp}
  - {id: leak, type: set, name: leak, value: "[{{base}}]"}
"""

    async def test_output_mapping_binds_only_mapped_names(self, run, loader):
        loader.documents["child.yaml"] = self.CHILD
        execution = await run(
            """
nodes:
  - id: call
    type: workflow
    path: child.yaml
    input: "seed=base"
    output: {result: doubled, leaked: leak}
""",
            variables={"base": 21},
        )

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.variables["result"] == 42
        assert execution.variables["leaked"] == "[]"
        for name in ("doubled", "scratch", "seed", "leak"):
            assert name not in execution.variables

    async def test_json_input_mapping_resolves_templates(self, run, loader):
        loader.documents["child.yaml"] = self.CHILD
        execution = await run(
            """
nodes:
  - id: call
    type: workflow
    path: child.yaml
    input: {seed: "{{base}}"}
    output: "result=doubled"
""",
            variables={"base": 5},
        )

        assert execution.variables["result"] == 10

    async def test_prefix_copies_all_child_variables(self, run, loader):
        loader.documents["child.yaml"] = self.CHILD
        execution = await run(
            "nodes:\n  - {id: call, type: workflow, path: child.yaml, input: 'seed=3', prefix: 'sub_'}"
        )

        assert execution.variables["sub_doubled"] == 6
        assert execution.variables["sub_scratch"] == "temp"
        assert execution.variables["sub_seed"] == "3"

    async def test_nothing_crosses_without_mapping(self, run, loader):
        loader.documents["child.yaml"] = self.CHILD
        execution = await run(
            "nodes:\n  - {id: call, type: workflow, path: child.yaml}",
            variables={"base": 1},
        )

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.variables.snapshot() == {"base": 1}

    async def test_child_steps_share_the_execution(self, run, loader):
        loader.documents["child.yaml"] = self.CHILD
        execution = await run("nodes:\n  - {id: call, type: workflow, path: child.yaml, input: 'seed=1'}")

        assert step_ids(execution) == ["double", "scratch", "leak", "call"]

    async def test_named_workflow_in_multi_document(self, run, loader):
        loader.documents["lib.yaml"] = """
workflows:
  - name: first
    nodes:
      a: {type: variable, name: which, value: first}
  - name: second
    nodes:
      a: {type: variable, name: which, value: second}
"""
        execution = await run(
            "nodes:\n  - {id: call, type: workflow, path: lib.yaml, name: second, output: 'picked=which'}"
        )

        assert execution.variables["picked"] == "second"

    async def test_missing_document(self, run):
        execution = await run("nodes:\n  - {id: call, type: workflow, path: nowhere.yaml}")

        assert execution.status == ExecutionStatus.ERROR
        assert "nowhere.yaml" in terminal_event(execution).data["message"]
        assert terminal_event(execution).data["nodeId"] == "call"

    async def test_recursion_depth_limit(self, registry, broker, services, store, loader):
        loader.documents["self.yaml"] = "nodes:\n  - {id: again, type: workflow, path: self.yaml}"
        interpreter = WorkflowInterpreter(registry, broker, services, max_depth=3)
        execution = store.get(store.create("wf", parse_workflow(loader.documents["self.yaml"])))

        await interpreter.run(execution)

        assert execution.status == ExecutionStatus.ERROR
        assert "maximum depth of 3" in terminal_event(execution).data["message"]

    async def test_child_failure_fails_parent(self, run, loader):
        loader.documents["bad.yaml"] = "nodes:\n  - {id: boom, type: json, source: nothing, saveTo: x}"
        execution = await run("nodes:\n  - {id: call, type: workflow, path: bad.yaml}")

        assert execution.status == ExecutionStatus.ERROR
        assert terminal_event(execution).data["nodeId"] == "boom"


@pytest.mark.parametrize("duration", ["-5", "soon"])
async def test_invalid_sleep_duration(run, duration):
    execution = await run(f"nodes:\n  - {{id: nap, type: sleep, duration: '{duration}'}}")

    assert execution.status == ExecutionStatus.ERROR
    assert "Invalid sleep duration" in terminal_event(execution).data["message"]
