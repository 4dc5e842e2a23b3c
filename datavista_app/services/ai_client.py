# datavista_app/services/ai_client.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from flask import current_app


class GenerationError(RuntimeError):
    """Failure talking to the generative model, or an unusable answer from it."""


DASHBOARD_PROMPT = """
Analyze this {file_type} file data and generate a comprehensive dashboard analysis:

File: {file_name}
Content: {content}

Please provide:
1. A brief summary of the data
2. Key insights and patterns
3. Suggested chart types and configurations
4. Important metrics and KPIs
5. Any anomalies or outliers

Format the response as JSON with the following structure:
{{
  "summary": "Brief overview of the data",
  "insights": ["insight1", "insight2", ...],
  "charts": [
    {{
      "type": "bar|line|pie|area",
      "title": "Chart Title",
      "data": [{{"name": "label", "value": 0}}],
      "config": {{}}
    }}
  ],
  "metrics": [
    {{
      "name": "Metric Name",
      "value": "Value",
      "change": "+5.2%"
    }}
  ]
}}
"""

BLOG_PROMPT = """
Analyze this blog content and provide:
1. A compelling title
2. A brief summary (2-3 sentences)
3. Relevant tags
4. SEO-friendly meta description

Content: {content}

Format as JSON:
{{
  "title": "Suggested Title",
  "summary": "Brief summary",
  "tags": ["tag1", "tag2", ...],
  "metaDescription": "SEO description"
}}
"""


class GenerationClient:
    """
    Thin wrapper over the Gemini SDK's ``models.generate_content``.
    Returns the model text verbatim; callers parse it (see ai_parsing).
    """

    def __init__(self, api_key: str, model: str, timeout: float | None = 60, client=None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout or None
        self._client = client

    @property
    def client(self):
        # built on first use: the SDK refuses an empty key
        if self._client is None:
            http_options = None
            if self.timeout:
                http_options = genai_types.HttpOptions(timeout=int(self.timeout * 1000))
            self._client = genai.Client(api_key=self.api_key, http_options=http_options)
        return self._client

    def _generate(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationError("GEMINI_API_KEY is not set")
        try:
            response = self.client.models.generate_content(model=self.model, contents=prompt)
        except genai_errors.APIError as e:
            raise GenerationError(f"Generation endpoint returned HTTP {e.code}: {e.message}") from e
        except Exception as e:
            raise GenerationError(f"Generation request failed: {e}") from e

        try:
            text = response.text
        except (AttributeError, ValueError) as e:
            raise GenerationError("Unexpected response from the model") from e
        if not isinstance(text, str) or not text:
            reason = getattr(getattr(response, "prompt_feedback", None), "block_reason", None)
            raise GenerationError(f"Empty response from the model{f' ({reason})' if reason else ''}")
        return text

    def generate_dashboard(self, encoded_content: str, file_name: str, file_type: str) -> str:
        prompt = DASHBOARD_PROMPT.format(file_type=file_type, file_name=file_name, content=encoded_content)
        return self._generate(prompt)

    def generate_blog_summary(self, content: str) -> str:
        return self._generate(BLOG_PROMPT.format(content=content))


def _build_client(app) -> GenerationClient:
    cfg = app.config
    return GenerationClient(
        api_key=cfg.get("GEMINI_API_KEY", ""),
        model=cfg.get("GEMINI_MODEL", "gemini-2.0-flash"),
        timeout=cfg.get("GEMINI_TIMEOUT", 60),
    )

def init_ai(app):
    app.extensions["ai_client"] = _build_client(app)

def get_ai_client():
    client = current_app.extensions.get("ai_client")
    if client is None:
        client = _build_client(current_app)
        current_app.extensions["ai_client"] = client
    return client
