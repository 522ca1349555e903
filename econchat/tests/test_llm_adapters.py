from __future__ import annotations

import unittest

import httpx

from econchat.config import Settings
from econchat.exceptions import ProviderResponseError, ProviderTransportError
from econchat.llm.adapters.anthropic import ANTHROPIC_PROFILE, AnthropicCodec
from econchat.llm.adapters.base import ProviderAdapter
from econchat.llm.adapters.factory import build_default_adapters
from econchat.llm.adapters.gemini import GEMINI_PROFILE, GeminiCodec
from econchat.llm.adapters.groq import GROQ_PROFILE, OpenAICompatibleCodec
from econchat.llm.tool_catalog import ECON_TOOLS, catalog_index
from econchat.models import HistoryMessage, Tier, ToolCall, ToolResult, ToolRound
from econchat.tests.utils import MockAsyncClient, MockAsyncResponse, run

WB_TOOL = catalog_index(ECON_TOOLS)["wb_get_indicator_data"]


def _anthropic(client: MockAsyncClient, api_key: str = "sk-ant-test") -> ProviderAdapter:
    return ProviderAdapter(ANTHROPIC_PROFILE, AnthropicCodec(), api_key, "https://api.anthropic.test/v1/", client=client)


def _gemini(client: MockAsyncClient) -> ProviderAdapter:
    return ProviderAdapter(GEMINI_PROFILE, GeminiCodec(), "gm-test", "https://gemini.test/v1beta", client=client)


def _groq(client: MockAsyncClient) -> ProviderAdapter:
    return ProviderAdapter(GROQ_PROFILE, OpenAICompatibleCodec(), "gsk-test", "https://groq.test/openai/v1", client=client)


class AnthropicAdapterTest(unittest.TestCase):
    def test_generate_builds_messages_request(self) -> None:
        client = MockAsyncClient(
            [
                MockAsyncResponse(
                    {
                        "content": [{"type": "text", "text": "Kenya's GDP was about $110bn."}],
                        "usage": {"input_tokens": 1000, "output_tokens": 500},
                    }
                )
            ]
        )
        adapter = _anthropic(client)

        response = run(
            adapter.generate(
                "What is Kenya's GDP?",
                tools=[WB_TOOL],
                history=[HistoryMessage(role="user", content="hi"), HistoryMessage(role="assistant", content="hello")],
            )
        )

        call = client.last_call
        self.assertEqual(call["url"], "https://api.anthropic.test/v1/messages")
        self.assertEqual(call["headers"]["x-api-key"], "sk-ant-test")
        self.assertEqual(call["headers"]["anthropic-version"], "2023-06-01")
        body = call["json"]
        self.assertEqual(body["model"], ANTHROPIC_PROFILE.model)
        self.assertEqual(body["max_tokens"], 4096)
        self.assertEqual([message["role"] for message in body["messages"]], ["user", "assistant", "user"])
        self.assertEqual(body["tools"][0]["name"], "wb_get_indicator_data")
        self.assertNotIn("tool_choice", body)

        self.assertEqual(response.tierUsed, Tier.PREMIUM)
        self.assertEqual(response.provider, "anthropic")
        self.assertEqual(response.content, "Kenya's GDP was about $110bn.")
        self.assertIsNone(response.toolCalls)
        self.assertEqual(response.usage.inputTokens, 1000)
        self.assertAlmostEqual(response.usage.estimatedCost, 0.0525)

    def test_tool_use_blocks_become_tool_calls(self) -> None:
        client = MockAsyncClient(
            [
                MockAsyncResponse(
                    {
                        "content": [
                            {"type": "text", "text": "Let me look that up."},
                            {
                                "type": "tool_use",
                                "id": "toolu_01",
                                "name": "wb_get_indicator_data",
                                "input": {"indicator": "NY.GDP.MKTP.CD", "countries": ["KEN"]},
                            },
                        ],
                        "usage": {"input_tokens": 10, "output_tokens": 5},
                    }
                )
            ]
        )

        response = run(_anthropic(client).generate("GDP of Kenya", tools=[WB_TOOL]))

        self.assertEqual(len(response.toolCalls), 1)
        self.assertEqual(response.toolCalls[0].id, "toolu_01")
        self.assertEqual(response.toolCalls[0].arguments["countries"], ["KEN"])

    def test_continuation_appends_tool_use_and_result_blocks(self) -> None:
        client = MockAsyncClient(
            [MockAsyncResponse({"content": [{"type": "text", "text": "Done."}], "usage": {}})]
        )
        call = ToolCall(id="toolu_01", name="wb_list_countries", arguments={})

        run(
            _anthropic(client).continue_with_tool_results(
                "List countries",
                [call],
                [ToolResult(toolCallId="toolu_01", result=[{"code": "KEN"}])],
                tools=[WB_TOOL],
            )
        )

        messages = client.last_call["json"]["messages"]
        self.assertEqual(messages[-2]["content"][0]["type"], "tool_use")
        tool_result = messages[-1]["content"][0]
        self.assertEqual(tool_result["type"], "tool_result")
        self.assertEqual(tool_result["tool_use_id"], "toolu_01")
        self.assertEqual(tool_result["content"], '[{"code": "KEN"}]')
        self.assertEqual(client.last_call["json"]["tool_choice"], {"type": "none"})

    def test_continuation_replays_earlier_rounds_and_keeps_tools_open(self) -> None:
        client = MockAsyncClient(
            [MockAsyncResponse({"content": [{"type": "text", "text": "Done."}], "usage": {}})]
        )
        earlier = ToolRound(
            toolCalls=[ToolCall(id="toolu_01", name="wb_list_countries", arguments={})],
            toolResults=[ToolResult(toolCallId="toolu_01", result=[{"code": "KEN"}])],
        )
        call = ToolCall(id="toolu_02", name="wb_get_indicator_data", arguments={"indicator": "SP.POP.TOTL"})

        run(
            _anthropic(client).continue_with_tool_results(
                "Population of Kenya",
                [call],
                [ToolResult(toolCallId="toolu_02", result=[{"value": 55}])],
                tools=[WB_TOOL],
                earlier_rounds=[earlier],
                allow_more_tools=True,
            )
        )

        body = client.last_call["json"]
        messages = body["messages"]
        self.assertEqual([message["role"] for message in messages], ["user", "assistant", "user", "assistant", "user"])
        self.assertEqual(messages[1]["content"][0]["id"], "toolu_01")
        self.assertEqual(messages[2]["content"][0]["tool_use_id"], "toolu_01")
        self.assertEqual(messages[3]["content"][0]["id"], "toolu_02")
        self.assertEqual(messages[4]["content"][0]["content"], '[{"value": 55}]')
        self.assertNotIn("tool_choice", body)

    def test_missing_api_key_fails_without_calling_out(self) -> None:
        client = MockAsyncClient([])

        with self.assertRaises(ProviderTransportError) as ctx:
            run(_anthropic(client, api_key="").generate("GDP of Kenya"))

        self.assertIn("API key not configured", str(ctx.exception))
        self.assertEqual(ctx.exception.tier, Tier.PREMIUM)
        self.assertEqual(client.calls, [])

    def test_http_error_status_is_a_transport_error(self) -> None:
        client = MockAsyncClient(
            [MockAsyncResponse({"error": {"type": "overloaded_error", "message": "Overloaded"}}, status_code=529)]
        )

        with self.assertRaises(ProviderTransportError) as ctx:
            run(_anthropic(client).generate("GDP of Kenya"))

        self.assertEqual(ctx.exception.status_code, 529)
        self.assertIn("Overloaded", str(ctx.exception))

    def test_timeout_is_a_transport_error(self) -> None:
        client = MockAsyncClient([httpx.ReadTimeout("timed out")])

        with self.assertRaises(ProviderTransportError) as ctx:
            run(_anthropic(client).generate("GDP of Kenya"))

        self.assertIn("timed out", str(ctx.exception))
        self.assertIsNone(ctx.exception.status_code)

    def test_non_json_body_is_a_response_error(self) -> None:
        client = MockAsyncClient([MockAsyncResponse(text="<html>gateway</html>")])

        with self.assertRaises(ProviderResponseError):
            run(_anthropic(client).generate("GDP of Kenya"))


class GeminiAdapterTest(unittest.TestCase):
    def test_function_calls_get_generated_ids(self) -> None:
        client = MockAsyncClient(
            [
                MockAsyncResponse(
                    {
                        "candidates": [
                            {
                                "content": {
                                    "role": "model",
                                    "parts": [
                                        {"functionCall": {"name": "imf_get_weo_data", "args": {"indicator": "NGDP_RPCH", "countries": ["NGA"]}}},
                                        {"functionCall": {"name": "imf_list_datasets", "args": {}}},
                                    ],
                                }
                            }
                        ],
                        "usageMetadata": {"promptTokenCount": 40, "candidatesTokenCount": 12},
                    }
                )
            ]
        )

        response = run(_gemini(client).generate("Nigeria growth forecast", tools=ECON_TOOLS))

        call = client.last_call
        self.assertEqual(call["url"], "https://gemini.test/v1beta/models/gemini-2.5-flash:generateContent")
        self.assertEqual(call["headers"]["x-goog-api-key"], "gm-test")
        declarations = {decl["name"]: decl for decl in call["json"]["tools"][0]["functionDeclarations"]}
        self.assertEqual(declarations["imf_get_weo_data"]["parameters"]["type"], "OBJECT")
        self.assertEqual(call["json"]["generationConfig"]["maxOutputTokens"], GEMINI_PROFILE.max_output_tokens)

        ids = [tool_call.id for tool_call in response.toolCalls]
        self.assertTrue(all(call_id.startswith("gemini-") for call_id in ids))
        self.assertEqual(len(set(ids)), 2)
        self.assertEqual(response.toolCalls[0].arguments, {"indicator": "NGDP_RPCH", "countries": ["NGA"]})
        self.assertEqual(response.usage.outputTokens, 12)
        self.assertEqual(response.tierUsed, Tier.STANDARD)

    def test_history_roles_are_mapped(self) -> None:
        client = MockAsyncClient(
            [MockAsyncResponse({"candidates": [{"content": {"parts": [{"text": "ok"}]}}]})]
        )

        run(_gemini(client).generate("And Ghana?", history=[HistoryMessage(role="assistant", content="Kenya: 5%")]))

        contents = client.last_call["json"]["contents"]
        self.assertEqual([content["role"] for content in contents], ["model", "user"])

    def test_empty_candidates_is_a_response_error(self) -> None:
        client = MockAsyncClient([MockAsyncResponse({"candidates": []})])

        with self.assertRaises(ProviderResponseError) as ctx:
            run(_gemini(client).generate("GDP of Kenya"))

        self.assertEqual(ctx.exception.provider, "gemini")

    def test_continuation_sends_function_responses(self) -> None:
        client = MockAsyncClient(
            [MockAsyncResponse({"candidates": [{"content": {"parts": [{"text": "Growth is 3%."}]}}]})]
        )
        call = ToolCall(id="gemini-1-abc", name="imf_get_weo_data", arguments={"indicator": "NGDP_RPCH"})

        run(
            _gemini(client).continue_with_tool_results(
                "Nigeria growth",
                [call],
                [ToolResult(toolCallId="gemini-1-abc", result={"error": "No data"})],
                tools=ECON_TOOLS,
            )
        )

        body = client.last_call["json"]
        self.assertEqual(body["contents"][-2]["parts"][0]["functionCall"]["name"], "imf_get_weo_data")
        response_part = body["contents"][-1]["parts"][0]["functionResponse"]
        self.assertEqual(response_part["response"], {"result": {"error": "No data"}})
        self.assertEqual(body["toolConfig"], {"functionCallingConfig": {"mode": "NONE"}})

    def test_continuation_with_tools_open_sets_no_tool_config(self) -> None:
        client = MockAsyncClient(
            [MockAsyncResponse({"candidates": [{"content": {"parts": [{"text": "Growth is 3%."}]}}]})]
        )
        earlier = ToolRound(
            toolCalls=[ToolCall(id="gemini-1-abc", name="imf_list_countries", arguments={})],
            toolResults=[ToolResult(toolCallId="gemini-1-abc", result=[{"code": "NGA"}])],
        )
        call = ToolCall(id="gemini-2-def", name="imf_get_weo_data", arguments={"indicator": "NGDP_RPCH"})

        run(
            _gemini(client).continue_with_tool_results(
                "Nigeria growth",
                [call],
                [ToolResult(toolCallId="gemini-2-def", result=[{"year": 2024, "value": 3.1}])],
                tools=ECON_TOOLS,
                earlier_rounds=[earlier],
                allow_more_tools=True,
            )
        )

        body = client.last_call["json"]
        self.assertEqual([content["role"] for content in body["contents"]], ["user", "model", "user", "model", "user"])
        self.assertEqual(body["contents"][1]["parts"][0]["functionCall"]["name"], "imf_list_countries")
        self.assertEqual(body["contents"][3]["parts"][0]["functionCall"]["name"], "imf_get_weo_data")
        self.assertNotIn("toolConfig", body)


class GroqAdapterTest(unittest.TestCase):
    def test_tool_call_arguments_are_decoded(self) -> None:
        client = MockAsyncClient(
            [
                MockAsyncResponse(
                    {
                        "choices": [
                            {
                                "message": {
                                    "role": "assistant",
                                    "content": None,
                                    "tool_calls": [
                                        {
                                            "id": "call_1",
                                            "type": "function",
                                            "function": {
                                                "name": "owid_get_chart_data",
                                                "arguments": '{"chart_slug": "co2", "countries": ["Kenya"]}',
                                            },
                                        }
                                    ],
                                }
                            }
                        ],
                        "usage": {"prompt_tokens": 200, "completion_tokens": 30},
                    }
                )
            ]
        )

        response = run(_groq(client).generate("CO2 in Kenya", tools=ECON_TOOLS))

        body = client.last_call["json"]
        self.assertEqual(client.last_call["url"], "https://groq.test/openai/v1/chat/completions")
        self.assertEqual(client.last_call["headers"]["Authorization"], "Bearer gsk-test")
        self.assertEqual(body["messages"][0]["role"], "system")
        self.assertEqual(body["tool_choice"], "auto")
        self.assertEqual(body["tools"][0]["type"], "function")

        self.assertEqual(response.toolCalls[0].arguments, {"chart_slug": "co2", "countries": ["Kenya"]})
        self.assertEqual(response.content, "")
        self.assertEqual(response.usage.estimatedCost, 0.0)

    def test_malformed_arguments_are_a_response_error(self) -> None:
        client = MockAsyncClient(
            [
                MockAsyncResponse(
                    {
                        "choices": [
                            {
                                "message": {
                                    "tool_calls": [
                                        {"id": "call_1", "function": {"name": "wb_list_countries", "arguments": "{not json"}}
                                    ]
                                }
                            }
                        ]
                    }
                )
            ]
        )

        with self.assertRaises(ProviderResponseError) as ctx:
            run(_groq(client).generate("countries"))

        self.assertIn("malformed arguments", str(ctx.exception))

    def test_continuation_sends_tool_messages(self) -> None:
        client = MockAsyncClient([MockAsyncResponse({"choices": [{"message": {"content": "Here you go."}}]})])
        call = ToolCall(id="call_1", name="wb_list_countries", arguments={})

        response = run(
            _groq(client).continue_with_tool_results(
                "countries",
                [call],
                [ToolResult(toolCallId="call_1", result=[{"code": "KEN"}])],
                tools=ECON_TOOLS,
            )
        )

        messages = client.last_call["json"]["messages"]
        self.assertEqual(messages[-2]["tool_calls"][0]["function"]["arguments"], "{}")
        self.assertEqual(messages[-1]["role"], "tool")
        self.assertEqual(messages[-1]["tool_call_id"], "call_1")
        self.assertEqual(client.last_call["json"]["tool_choice"], "none")
        self.assertEqual(response.content, "Here you go.")

    def test_continuation_with_tools_open_keeps_auto_choice(self) -> None:
        client = MockAsyncClient([MockAsyncResponse({"choices": [{"message": {"content": "Here you go."}}]})])
        earlier = ToolRound(
            toolCalls=[ToolCall(id="call_1", name="wb_list_countries", arguments={})],
            toolResults=[ToolResult(toolCallId="call_1", result=[{"code": "KEN"}])],
        )
        call = ToolCall(id="call_2", name="imf_list_datasets", arguments={})

        run(
            _groq(client).continue_with_tool_results(
                "countries and datasets",
                [call],
                [ToolResult(toolCallId="call_2", result=[{"id": "WEO"}])],
                tools=ECON_TOOLS,
                earlier_rounds=[earlier],
                allow_more_tools=True,
            )
        )

        body = client.last_call["json"]
        roles = [message["role"] for message in body["messages"]]
        self.assertEqual(roles, ["system", "user", "assistant", "tool", "assistant", "tool"])
        tool_ids = [message["tool_call_id"] for message in body["messages"] if message["role"] == "tool"]
        self.assertEqual(tool_ids, ["call_1", "call_2"])
        self.assertEqual(body["tool_choice"], "auto")


class FactoryTest(unittest.TestCase):
    def test_default_adapters_use_gemini_for_standard(self) -> None:
        adapters = build_default_adapters(Settings(anthropic_api_key="a", gemini_api_key="g"))

        self.assertEqual(adapters[Tier.PREMIUM].provider, "anthropic")
        self.assertEqual(adapters[Tier.STANDARD].provider, "gemini")
        self.assertEqual(adapters[Tier.STANDARD].api_key, "g")

    def test_groq_can_serve_the_standard_tier(self) -> None:
        adapters = build_default_adapters(Settings(anthropic_api_key="a", groq_api_key="q", standard_provider="groq"))

        self.assertEqual(adapters[Tier.STANDARD].provider, "groq")
        self.assertEqual(adapters[Tier.STANDARD].tier, Tier.STANDARD)
        self.assertEqual(adapters[Tier.STANDARD].base_url, "https://api.groq.com/openai/v1")


if __name__ == "__main__":
    unittest.main()
