"""
Tests for the command node with a fake generation provider.
"""

import base64

from hubflow import config
from hubflow.models import ExecutionStatus

from conftest import terminal_event


class TestCommand:

    async def test_prompt_is_resolved_and_answer_saved(self, run, providers):
        execution = await run(
            "nodes:\n  - {id: ask, type: command, prompt: 'Summarize {{topic}}', saveTo: answer}",
            variables={"topic": "tides"},
        )

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.variables["answer"] == "echo: Summarize tides"
        request = providers.providers["gemini"].requests[0]
        assert request.model == config.DEFAULT_MODEL
        assert request.system_prompt is None

    async def test_step_output_reports_model_and_usage(self, run):
        execution = await run(
            "nodes:\n  - {id: ask, type: command, prompt: hi, model: custom-model, saveTo: answer}"
        )

        output = execution.steps[0].output
        assert output["usedModel"] == "custom-model"
        assert output["usage"] == {"totalTokens": 7}
        assert "toolCalls" not in output

    async def test_provider_and_system_prompt(self, run, providers):
        await run(
            "nodes:\n  - {id: ask, type: command, provider: openai, systemPrompt: 'Be {{tone}}', prompt: hi}",
            variables={"tone": "brief"},
        )

        request = providers.providers["openai"].requests[0]
        assert request.system_prompt == "Be brief"
        assert not providers.providers["gemini"].requests

    async def test_unknown_provider_fails(self, run):
        execution = await run("nodes:\n  - {id: ask, type: command, provider: nowhere, prompt: hi}")

        assert execution.status == ExecutionStatus.ERROR
        assert "nowhere" in terminal_event(execution).data["message"]

    async def test_empty_prompt_fails(self, run):
        execution = await run("nodes:\n  - {id: ask, type: command, prompt: '{{blank}}'}")

        assert execution.status == ExecutionStatus.ERROR
        assert "empty" in terminal_event(execution).data["message"]

    async def test_attachments_from_variables(self, run, providers):
        image = {
            "basename": "cat.png",
            "mimeType": "image/png",
            "contentType": "binary",
            "data": base64.b64encode(b"meow").decode("ascii"),
        }
        await run(
            "nodes:\n  - {id: ask, type: command, prompt: describe, attachments: 'photo, notes'}",
            variables={"photo": image, "notes": "some text"},
        )

        attachments = providers.providers["gemini"].requests[0].attachments
        assert [(a.name, a.mime_type, a.data) for a in attachments] == [
            ("cat.png", "image/png", b"meow"),
            ("notes", "text/plain", b"some text"),
        ]

    async def test_missing_attachment_fails(self, run):
        execution = await run("nodes:\n  - {id: ask, type: command, prompt: hi, attachments: ghost}")

        assert execution.status == ExecutionStatus.ERROR
        assert "ghost" in terminal_event(execution).data["message"]

    async def test_mcp_tools_are_offered_and_called(self, run, mcp_factory, providers):
        execution = await run(
            "nodes:\n  - {id: ask, type: command, prompt: find it, mcpServers: 'https://mcp.example/a', saveTo: answer}"
        )

        request = providers.providers["gemini"].requests[0]
        assert [t.name for t in request.tools] == ["lookup"]
        client = mcp_factory.clients[0]
        assert client.url == "https://mcp.example/a"
        assert client.calls == [("lookup", {"q": "find it"})]
        assert client.closed
        assert execution.variables["answer"] == "echo: find it | lookup result"
        assert execution.steps[0].output["toolCalls"] == [
            {"name": "lookup", "args": {"q": "find it"}, "result": "lookup result"}
        ]

    async def test_duplicate_tool_names_keep_first_server(self, run, mcp_factory, providers):
        await run(
            "nodes:\n  - {id: ask, type: command, prompt: x, mcpServers: 'https://one.example, https://two.example'}"
        )

        assert [t.name for t in providers.providers["gemini"].requests[0].tools] == ["lookup"]
        assert len(mcp_factory.clients[0].calls) == 1
        assert mcp_factory.clients[1].calls == []
        assert all(client.closed for client in mcp_factory.clients)

    async def test_provider_failure_is_external_error(self, run, providers):
        def broken(request, tool_executor=None, max_tool_rounds=10):
            raise RuntimeError("quota exhausted")

        providers.providers["gemini"].generate = broken

        execution = await run("nodes:\n  - {id: ask, type: command, prompt: hi}")

        assert execution.status == ExecutionStatus.ERROR
        message = terminal_event(execution).data["message"]
        assert message.startswith("gemini call failed")
        assert "quota exhausted" in message
