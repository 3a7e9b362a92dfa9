"""Tests for the oracle prompt helpers and backends."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from openai import APITimeoutError

from synth_db.config.settings import FillerConfig
from synth_db.errors import ConfigurationError
from synth_db.model.schema import parse_schema
from synth_db.model.values import NULL
from synth_db.oracle.base import (
    SYSTEM_PROMPT,
    GeneratedInsert,
    build_prompt,
    build_user_message,
    extract_statement,
    render_dependency_values,
    render_table_values,
)
from synth_db.oracle.databricks import DatabricksGenerator, parse_content
from synth_db.oracle.factory import create_generator
from synth_db.oracle.ollama import OllamaGenerator
from synth_db.oracle.openai import TOOL_NAME, OpenAIGenerator

DDL = """
CREATE TABLE department (id INT PRIMARY KEY AUTO_INCREMENT, name VARCHAR(50));
CREATE TABLE employee (id INT PRIMARY KEY, name VARCHAR(50), department_id INT REFERENCES department(id));
"""

INSERT = "INSERT INTO employee (id, name, department_id) VALUES (3, 'Ada Lovelace', 1)"


class TestPromptHelpers:
    """Tests for prompt rendering shared by every backend."""

    def setup_method(self):
        self.schema = parse_schema(DDL)
        self.department = self.schema.get_table("department")
        self.employee = self.schema.get_table("employee")
        id_, name = self.department.column("id"), self.department.column("name")
        self.department_rows = [{id_: 1, name: "Sales"}, {id_: 2, name: NULL}]

    def test_render_table_values(self):
        assert render_table_values(self.department_rows) == (
            "| id | name |\n"
            "| --- | --- |\n"
            "| 1 | Sales |\n"
            "| 2 |  |\n"
        )

    def test_render_table_values_empty(self):
        assert render_table_values([]) == ""
        assert render_table_values(None) == ""

    def test_render_dependency_values_skips_empty_tables(self):
        text = render_dependency_values({self.department: self.department_rows, self.employee: []})
        assert text.startswith("Table: department\n| id | name |")
        assert "Table: employee" not in text
        assert text.endswith("| 2 |  |\n\n")

    def test_build_user_message(self):
        message = build_user_message(self.employee, 4, "VALUES", "OTHER")
        assert message.startswith("This is the table to generate data for:\n```\nCREATE TABLE employee")
        assert "There are already 4 rows in the table." in message
        assert "Here are some example values already in the table:\nVALUES\n\nOTHER" in message
        assert message.endswith("OTHER")

    def test_build_prompt_includes_dependencies(self):
        prompt = build_prompt(self.employee, 0, [], {self.department: self.department_rows})
        assert "There are already 0 rows in the table." in prompt
        assert "Table: department" in prompt

    def test_extract_statement(self):
        assert extract_statement(f"```sql\n{INSERT};\n```") == f"{INSERT};"
        assert extract_statement(f"Here you go:\n```\n{INSERT}\n```\nEnjoy") == INSERT
        assert extract_statement(f"  {INSERT}  ") == INSERT
        assert extract_statement(None) == ""

    def test_generated_insert_schema(self):
        schema = GeneratedInsert.model_json_schema()
        assert schema["required"] == ["query"]
        assert schema["properties"]["query"]["type"] == "string"


class TestOllamaGenerator:
    """Tests for OllamaGenerator against a mocked HTTP transport."""

    def setup_method(self):
        self.schema = parse_schema(DDL)
        self.employee = self.schema.get_table("employee")
        self.requests = []

    def _generator(self, handler):
        def record(request):
            self.requests.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(record))
        return OllamaGenerator(url="http://ollama.test/api/chat", model="llama3.1", client=client)

    def test_returns_query_from_structured_content(self):
        content = json.dumps({"query": INSERT})
        generator = self._generator(lambda r: httpx.Response(200, json={"message": {"content": content}}))

        assert generator.generate(self.employee, 2, [], {}) == INSERT

        body = json.loads(self.requests[0].content)
        assert body["model"] == "llama3.1"
        assert body["stream"] is False
        assert body["format"]["required"] == ["query"]
        assert body["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert "There are already 2 rows in the table." in body["messages"][1]["content"]
        assert str(self.requests[0].url) == "http://ollama.test/api/chat"

    def test_http_error_returns_empty(self):
        generator = self._generator(lambda r: httpx.Response(500, text="model not found"))
        assert generator.generate(self.employee, 0, [], {}) == ""

    def test_unstructured_content_returns_empty(self):
        generator = self._generator(lambda r: httpx.Response(200, json={"message": {"content": "no json"}}))
        assert generator.generate(self.employee, 0, [], {}) == ""

    def test_timeout_returns_empty(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        assert self._generator(handler).generate(self.employee, 0, [], {}) == ""

    def test_connection_error_returns_empty(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert self._generator(handler).generate(self.employee, 0, [], {}) == ""


def _completion(*tool_calls):
    message = SimpleNamespace(tool_calls=list(tool_calls) or None, content=None)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(name, arguments):
    return SimpleNamespace(function=SimpleNamespace(name=name, arguments=arguments))


class TestOpenAIGenerator:
    """Tests for OpenAIGenerator with a mocked client."""

    def setup_method(self):
        self.employee = parse_schema(DDL).get_table("employee")
        self.client = MagicMock()
        self.generator = OpenAIGenerator(api_key="sk-test", model="gpt-4o-mini", client=self.client)

    def test_reads_required_tool_call(self):
        self.client.chat.completions.create.return_value = _completion(
            _tool_call(TOOL_NAME, json.dumps({"query": INSERT}))
        )

        assert self.generator.generate(self.employee, 1, [], {}) == INSERT

        kwargs = self.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["tool_choice"] == "required"
        assert kwargs["tools"][0]["function"]["name"] == TOOL_NAME
        assert kwargs["messages"][0]["content"].startswith(SYSTEM_PROMPT)

    def test_other_tool_calls_ignored(self):
        self.client.chat.completions.create.return_value = _completion(_tool_call("other", "{}"))
        assert self.generator.generate(self.employee, 1, [], {}) == ""

    def test_no_tool_calls_returns_empty(self):
        self.client.chat.completions.create.return_value = _completion()
        assert self.generator.generate(self.employee, 1, [], {}) == ""

    def test_invalid_arguments_return_empty(self):
        self.client.chat.completions.create.return_value = _completion(_tool_call(TOOL_NAME, "{broken"))
        assert self.generator.generate(self.employee, 1, [], {}) == ""

    def test_timeout_returns_empty(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        self.client.chat.completions.create.side_effect = APITimeoutError(request=request)
        assert self.generator.generate(self.employee, 1, [], {}) == ""


class TestDatabricksGenerator:
    """Tests for DatabricksGenerator with a mocked workspace client."""

    def setup_method(self):
        self.employee = parse_schema(DDL).get_table("employee")
        self.client = MagicMock()
        self.generator = DatabricksGenerator(endpoint="test-endpoint", client=self.client)

    def _respond(self, content):
        message = SimpleNamespace(content=content)
        self.client.serving_endpoints.query.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=message)]
        )

    def test_json_answer(self):
        self._respond(json.dumps({"query": INSERT}))
        assert self.generator.generate(self.employee, 0, [], {}) == INSERT
        assert self.client.serving_endpoints.query.call_args.kwargs["name"] == "test-endpoint"

    def test_no_choices_returns_empty(self):
        self.client.serving_endpoints.query.return_value = SimpleNamespace(choices=[])
        assert self.generator.generate(self.employee, 0, [], {}) == ""

    def test_parse_content(self):
        assert parse_content(f"```json\n{json.dumps({'query': INSERT})}\n```") == INSERT
        assert parse_content(f"```sql\n{INSERT}\n```") == INSERT
        assert parse_content('{"answer": "none"}') == ""
        assert parse_content(None) == ""


class TestCreateGenerator:
    """Tests for the provider factory."""

    def test_ollama_defaults(self):
        generator = create_generator(FillerConfig(provider="ollama"))
        assert isinstance(generator, OllamaGenerator)
        assert generator.url == "http://localhost:11434/api/chat"
        assert generator.model == "llama3.1"

    def test_openai_requires_api_key(self):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            create_generator(FillerConfig(provider="openai"))

    def test_openai_with_key(self):
        generator = create_generator(FillerConfig(provider="openai", openai_api_key="sk-test", model="gpt-4o"))
        assert isinstance(generator, OpenAIGenerator)
        assert generator.model == "gpt-4o"

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            create_generator(FillerConfig(provider="llamafile"))
