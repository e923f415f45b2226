from texteditor.lsp.capabilities import CapabilityNegotiator, ServerCapabilities, build_initialize_params
from texteditor.lsp.semantic_tokens import CLIENT_TOKEN_TYPES, decode_semantic_tokens
from texteditor.lsp.types import SemanticTokenType


def test_initialize_params_declare_client_features():
    params = build_initialize_params(process_id=42, root_uri="file:///work")
    assert params["processId"] == 42
    assert params["rootUri"] == "file:///work"
    text_doc = params["capabilities"]["textDocument"]
    assert "publishDiagnostics" in text_doc
    assert "hover" in text_doc
    assert "completion" in text_doc
    tokens = text_doc["semanticTokens"]
    assert tokens["tokenTypes"] == list(CLIENT_TOKEN_TYPES)
    assert tokens["formats"] == ["relative"]


def test_root_uri_is_omitted_when_empty():
    assert "rootUri" not in build_initialize_params(process_id=1)


def test_capabilities_from_result():
    caps = ServerCapabilities.from_initialize_result(
        {
            "capabilities": {
                "hoverProvider": {"workDoneProgress": False},
                "completionProvider": False,
                "semanticTokensProvider": {"legend": {"tokenTypes": ["function", "weird"], "tokenModifiers": []}},
            }
        }
    )
    assert caps.hover_supported
    assert not caps.completion_supported
    assert caps.token_legend == ("function", "weird")
    tokens = decode_semantic_tokens([0, 0, 3, 0, 0, 0, 4, 2, 1, 0], caps.token_legend)
    assert [token.type for token in tokens] == [SemanticTokenType.FUNCTION, SemanticTokenType.UNKNOWN]


def test_missing_capabilities_mean_nothing_supported():
    caps = ServerCapabilities.from_initialize_result({"serverInfo": {"name": "x"}})
    assert caps == ServerCapabilities()
    assert caps.token_legend == ()


def test_negotiator_keeps_first_result_and_sends_initialized_once():
    negotiator = CapabilityNegotiator()
    assert not negotiator.received
    negotiator.accept_initialize_result({"capabilities": {"hoverProvider": True}})
    negotiator.accept_initialize_result({"capabilities": {}})
    assert negotiator.received
    assert negotiator.capabilities.hover_supported

    assert negotiator.document_opened() is True
    assert negotiator.document_opened() is False
