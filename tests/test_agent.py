"""
Agent 集成测试

使用本地 aiohttp 测试服务器执行完整的请求流程：
配置请求 -> Agent 绑定句柄 -> 并发执行 -> 完成通知 -> 读取结果。
运行方式: pytest tests/test_agent.py -v
"""

import asyncio
import pytest
from unittest.mock import MagicMock
import sys
import os

from aiohttp import web, test_utils

# 添加项目路径
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)
sys.path.insert(0, os.path.join(ROOT, "curlx-sdk"))

from curlx_sdk import (
    Agent,
    AgentConfig,
    AgentNotConnectedError,
    RequestConfig,
    RequestDescriptor,
)
from shared.models import Knob, RequestPhase


async def echo(request: web.Request) -> web.Response:
    form = await request.post()
    return web.json_response({
        "method": request.method,
        "form": dict(form),
        "trace": request.headers.get("X-Trace"),
        "agent": request.headers.get("User-Agent"),
    })


async def status(request: web.Request) -> web.Response:
    return web.Response(status=int(request.match_info["code"]), text="status")


async def slow(request: web.Request) -> web.Response:
    await asyncio.sleep(0.5)
    return web.Response(text="late")


async def redirect(request: web.Request) -> web.Response:
    raise web.HTTPFound("/echo")


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/status/{code}", status)
    app.router.add_get("/slow", slow)
    app.router.add_get("/redirect", redirect)
    return app


def local_server() -> test_utils.TestServer:
    return test_utils.TestServer(make_app())


class TestAgentLifecycle:
    """Agent 会话测试"""

    @pytest.mark.asyncio
    async def test_execute_requires_connection(self):
        agent = Agent()
        agent.new_request("https://example.test")

        with pytest.raises(AgentNotConnectedError):
            await agent.execute()

    @pytest.mark.asyncio
    async def test_connect_disconnect(self):
        agent = Agent()

        await agent.connect()
        assert agent.session is not None

        await agent.disconnect()
        with pytest.raises(AgentNotConnectedError):
            agent.session

    @pytest.mark.asyncio
    async def test_execute_empty_queue(self):
        async with Agent() as agent:
            assert await agent.execute() == []

    def test_new_request_applies_defaults(self):
        agent = Agent(AgentConfig(
            default_timeout_ms=750,
            default_headers={"X-Trace": "agent"},
            default_options={"user_agent": "curlx"},
        ))
        listener = MagicMock()
        agent.add_listener(listener)
        agent.add_listener(listener)

        request = agent.new_request("https://example.test")

        assert agent.pending == 1
        assert request.get_timeout() == 750
        assert request.get_headers() == {"X-Trace": "agent"}
        assert request.get_options()[Knob.USER_AGENT] == "curlx"
        assert request.get_listeners() == [listener]

    def test_new_request_uses_request_config(self):
        agent = Agent(request_config=RequestConfig(follow_location=False))

        request = agent.new_request("https://example.test")

        assert request.get_options()[Knob.FOLLOW_LOCATION] is False

    def test_add_request_rejects_finished(self):
        agent = Agent()
        completed = RequestDescriptor("https://example.test")
        completed.completion_hook({})
        disposed = RequestDescriptor("https://example.test")
        disposed.get_handle()
        disposed.dispose()

        assert agent.add_request(completed) is False
        assert agent.add_request(disposed) is False
        assert agent.pending == 0

    def test_add_request_rejects_closed_handle(self):
        agent = Agent()
        request = RequestDescriptor("https://example.test")
        request.get_handle().close()

        assert agent.add_request(request) is False
        assert agent.pending == 0

    def test_add_request_once(self):
        agent = Agent()
        request = RequestDescriptor("https://example.test")

        agent.add_request(request)
        agent.add_request(request)

        assert agent.pending == 1


class TestAgentExecution:
    """Agent 执行测试（本地测试服务器）"""

    @pytest.mark.asyncio
    async def test_end_to_end_post(self):
        async with local_server() as server, Agent() as agent:
            request = RequestDescriptor(str(server.make_url("/echo")))
            request.set_body_fields({"id": "7"})
            request.set_headers({"X-Trace": "abc"})
            request.set_timeout(2000)

            listener = MagicMock()
            request.add_listener(listener)

            agent.add_request(request)
            completed = await agent.execute()

            assert completed == [request]
            listener.assert_called_once_with(request)
            assert request.phase == RequestPhase.COMPLETED
            assert request.get_http_code() == 200
            assert '"method": "POST"' in request.get_response()
            assert '"form": {"id": "7"}' in request.get_response()
            assert '"trace": "abc"' in request.get_response()
            assert request.get_time() > 0.0
            assert agent.pending == 0

    @pytest.mark.asyncio
    async def test_get_request(self):
        async with local_server() as server, Agent() as agent:
            request = agent.new_request(str(server.make_url("/echo")))
            request.set_options({Knob.USER_AGENT: "curlx-test"})

            await agent.execute()

            assert request.get_http_code() == 200
            assert '"method": "GET"' in request.get_response()
            assert '"agent": "curlx-test"' in request.get_response()

    @pytest.mark.asyncio
    async def test_many_requests_each_notified_once(self):
        calls = []

        async with local_server() as server, Agent(AgentConfig(max_concurrent=2)) as agent:
            agent.add_listener(calls.append)
            requests = [
                agent.new_request(str(server.make_url(f"/status/{code}")))
                for code in (200, 201, 404, 500, 503)
            ]

            completed = await agent.execute()

            assert len(completed) == 5
            assert sorted(calls, key=id) == sorted(requests, key=id)
            assert [r.get_http_code() for r in requests] == [200, 201, 404, 500, 503]

    @pytest.mark.asyncio
    async def test_disposed_request_does_not_block_batch(self):
        async with local_server() as server, Agent() as agent:
            healthy = agent.new_request(str(server.make_url("/status/200")))
            healthy_listener = MagicMock()
            healthy.add_listener(healthy_listener)

            disposed = agent.new_request(str(server.make_url("/status/200")))
            disposed_listener = MagicMock()
            disposed.add_listener(disposed_listener)
            disposed.get_handle()
            disposed.dispose()

            completed = await agent.execute()

            assert completed == [healthy]
            healthy_listener.assert_called_once_with(healthy)
            disposed_listener.assert_not_called()
            assert healthy.get_http_code() == 200
            assert agent.pending == 0

    @pytest.mark.asyncio
    async def test_completed_request_is_not_run_again(self):
        async with local_server() as server, Agent() as agent:
            request = agent.new_request(str(server.make_url("/status/200")))
            listener = MagicMock()
            request.add_listener(listener)

            await agent.execute()

            assert agent.add_request(request) is False
            assert await agent.execute() == []
            listener.assert_called_once_with(request)

    @pytest.mark.asyncio
    async def test_outcome_read_before_completion_is_sticky(self):
        async with local_server() as server, Agent() as agent:
            request = agent.new_request(str(server.make_url("/status/201")))
            handle = request.get_handle()

            assert request.get_response() == ""
            assert request.get_http_code() == 0

            await agent.execute()

            assert handle.get_info().http_code == 201
            assert handle.get_content() == "status"
            assert request.get_response() == ""
            assert request.get_http_code() == 0

    @pytest.mark.asyncio
    async def test_follow_redirects(self):
        async with local_server() as server, Agent() as agent:
            request = agent.new_request(str(server.make_url("/redirect")))

            await agent.execute()

            assert request.get_http_code() == 200
            assert request.get_handle().get_info().effective_url.endswith("/echo")

    @pytest.mark.asyncio
    async def test_redirect_not_followed(self):
        async with local_server() as server, Agent() as agent:
            request = RequestDescriptor(
                str(server.make_url("/redirect")),
                config=RequestConfig(follow_location=False),
            )
            agent.add_request(request)

            await agent.execute()

            assert request.get_http_code() == 302

    @pytest.mark.asyncio
    async def test_timeout_is_recorded(self):
        async with local_server() as server, Agent() as agent:
            request = agent.new_request(str(server.make_url("/slow")))
            request.set_timeout(100)
            listener = MagicMock()
            request.add_listener(listener)

            await agent.execute()

            listener.assert_called_once_with(request)
            assert request.get_http_code() == 0
            assert request.get_response() == ""
            assert request.get_handle().get_info().error

    @pytest.mark.asyncio
    async def test_connection_failure_is_recorded(self):
        async with Agent() as agent:
            request = agent.new_request("http://127.0.0.1:1/unreachable")

            await agent.execute()

            info = request.get_handle().get_info()
            assert info.http_code == 0
            assert info.error
            assert request.get_http_code() == 0

    @pytest.mark.asyncio
    async def test_request_without_url(self):
        async with Agent() as agent:
            request = agent.new_request("not a url")
            listener = MagicMock()
            request.add_listener(listener)

            await agent.execute()

            listener.assert_called_once_with(request)
            assert request.get_handle().get_info().error == "No URL set"

    @pytest.mark.asyncio
    async def test_body_written_to_stdout(self, capsys):
        async with local_server() as server, Agent() as agent:
            request = RequestDescriptor(
                str(server.make_url("/status/200")),
                config=RequestConfig(return_transfer=False),
            )
            agent.add_request(request)

            await agent.execute()

            assert request.get_response() == ""
            assert capsys.readouterr().out == "status"

    @pytest.mark.asyncio
    async def test_cloned_request_runs_independently(self):
        async with local_server() as server, Agent() as agent:
            original = RequestDescriptor(str(server.make_url("/status/200")))
            original.get_handle()
            duplicate = original.clone()

            agent.add_request(original)
            agent.add_request(duplicate)
            await agent.execute()

            assert original.get_handle() is not duplicate.get_handle()
            assert original.get_http_code() == 200
            assert duplicate.get_http_code() == 200


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
