import os

import pytest

from config import AnalyzerConfig, Settings

CLEAN_AMAZON_HTML = """
<html>
  <head>
    <title>Amazon.com. Spend less. Smile more.</title>
    <meta property="og:site_name" content="Amazon">
  </head>
  <body>
    <a href="/gp/cart">Cart</a>
    <a href="https://amazon.com/deals">Deals</a>
    <script>window.ue_t0 = Date.now();</script>
    <form action="/s" method="get"><input type="text" name="field-keywords"></form>
  </body>
</html>
"""


@pytest.fixture
def config():
    return AnalyzerConfig()


@pytest.fixture
def settings():
    return Settings(gemini_api_key="test-key", request_timeout=2.0, relay_timeout=5.0)


@pytest.fixture
def clean_html():
    return CLEAN_AMAZON_HTML


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith(("PHISH_", "GEMINI_")):
            monkeypatch.delenv(name, raising=False)
