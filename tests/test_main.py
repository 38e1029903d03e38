"""
Tests for the example application.
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from bindrpc import RpcRouter, main
from bindrpc.main import app


def test_health_lists_functions():
    client = TestClient(app)

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "functions": ["add", "echo"]}


def test_index_page_calls_rpc_prefix():
    response = TestClient(app).get("/")

    assert response.status_code == 200
    assert "request.open('POST', '/rpc/' + func, true);" in response.text


def test_add_narrows_last_argument_to_a_byte():
    client = TestClient(app)

    assert client.post("/rpc/add", content="[1, 5, 10]").text == "16.0\n"
    assert client.post("/rpc/add", content="[1, 0.5, 257]").text == "2.5\n"


def test_echo():
    response = TestClient(app).post("/rpc/echo", content='["double me"]')

    assert response.text == '"double medouble me"\n'


def test_cors_preflight_allows_frontend():
    response = TestClient(app).options(
        "/rpc/echo",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_exceptions_from_functions_become_500():
    def broken(a: int) -> Exception | None:
        raise ZeroDivisionError("division by zero")

    rpc = RpcRouter()
    rpc.add_function(broken)
    test_app = FastAPI()
    test_app.add_exception_handler(Exception, main.global_exception_handler)
    test_app.include_router(rpc)
    client = TestClient(test_app, raise_server_exceptions=False)

    response = client.post("/rpc/broken", content="[1]")

    assert response.status_code == 500
    assert response.json() == {"detail": "division by zero"}
