"""
Schema Classifier

Asks a completion model which target tables a collection belongs to and how
its fields map onto their columns. Each configured model is tried in order
with linear-backoff retries; when every model fails the RuleEngine answers
instead. Whatever answers, the result is validated against the catalog.
"""

import json
import logging
import re
import time
from typing import Any, Callable, Dict, Optional

from datamapper.analysis.model import CollectionAnalysis
from datamapper.config import MigrationConfig
from datamapper.llms.llm import CompletionClient
from datamapper.mapping.model import MappingResult, UnmappedField
from datamapper.mapping.prompt import build_messages
from datamapper.mapping.rule_engine import RuleEngine
from datamapper.mapping.validation import revalidate, validate_mapping
from datamapper.migration.exceptions import ClassifierResponseError
from datamapper.utils.retry import call_with_retry, is_rate_limit_error

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```(?:json|JSON)?")


def strip_code_fences(text: str) -> str:
    """Remove markdown fence markers, keeping whatever they enclose."""
    return CODE_FENCE.sub("", text).strip()


def extract_json_object(text: str) -> str:
    """
    Return the first top-level {...} block in `text`.

    Braces inside JSON strings are ignored.

    Raises:
        ClassifierResponseError: If no balanced object is found
    """
    start = text.find("{")
    if start == -1:
        raise ClassifierResponseError("No JSON object in response", raw_response=text)

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    raise ClassifierResponseError("Unbalanced JSON object in response", raw_response=text)


def parse_mapping_response(text: str) -> Dict[str, Any]:
    """
    Parse a completion into a raw mapping dict.

    Raises:
        ClassifierResponseError: If the text holds no JSON object with a `tables` list
    """
    if not text or not text.strip():
        raise ClassifierResponseError("Empty response", raw_response=text or "")

    candidate = extract_json_object(strip_code_fences(text))
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ClassifierResponseError(f"Invalid JSON in response: {e}", raw_response=text) from e

    if not isinstance(data, dict) or not isinstance(data.get("tables"), list):
        raise ClassifierResponseError("Response has no 'tables' list", raw_response=text)
    return data


class SchemaClassifier:
    """LLM-first classifier with model rotation and a rule-based fallback."""

    def __init__(
        self,
        client: Optional[CompletionClient],
        migration_config: Optional[MigrationConfig] = None,
        rule_engine: Optional[RuleEngine] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.client = client
        self.config = migration_config or MigrationConfig()
        self.rule_engine = rule_engine or RuleEngine()
        self.sleep = sleep or time.sleep

    def _ask(self, model: str, messages) -> MappingResult:
        response = self.client.complete(
            model=model, messages=messages, temperature=self.config.temperature
        )
        return validate_mapping(parse_mapping_response(response), method="llm", model=model)

    def classify(self, analysis: CollectionAnalysis) -> MappingResult:
        """
        Map a collection onto the target catalog.

        Never raises: if no model answers usably the rule-based mapping is returned.
        """
        if self.client is not None and self.config.models:
            messages = build_messages(analysis, self.config.prompt_sample_records)

            # Rotation position lives only in this call
            for position, model in enumerate(self.config.models):
                try:
                    result = call_with_retry(
                        lambda: self._ask(model, messages),
                        max_attempts=self.config.max_attempts,
                        base_delay=self.config.retry_delay,
                        sleep=self.sleep,
                        label=f"classify {analysis.collection_id} with {model}",
                    )
                except Exception as e:
                    if is_rate_limit_error(e):
                        logger.warning(f"Model {model} is rate limited, rotating to next model")
                    else:
                        logger.warning(f"Model {model} failed for {analysis.collection_id}: {e}")
                    continue

                logger.info(
                    f"Classified {analysis.collection_id} with {model} "
                    f"(model {position + 1}/{len(self.config.models)}): {result.table_names}"
                )
                return result

            logger.warning(
                f"All {len(self.config.models)} models failed for {analysis.collection_id}, "
                f"falling back to rule engine"
            )

        return self.fallback(analysis)

    # Alias used by the orchestrator and API
    determine_mapping = classify

    def fallback(self, analysis: CollectionAnalysis) -> MappingResult:
        """Rule-based mapping, validated the same way as model output."""
        try:
            return revalidate(self.rule_engine.map_collection(analysis))
        except Exception as e:
            logger.error(f"Rule engine failed for {analysis.collection_id}: {e}", exc_info=True)
            return MappingResult(
                tables=[],
                unmapped_fields=[
                    UnmappedField(field_name=name, reason=f"rule engine error: {e}")
                    for name in analysis.field_names
                ],
                method="rule",
            )
