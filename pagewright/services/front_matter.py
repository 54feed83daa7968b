"""Front-matter parsing: split raw file text into metadata and body."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml
from yaml.constructor import ConstructorError
from yaml.nodes import MappingNode, ScalarNode

from pagewright.exceptions import FrontMatterError
from pagewright.models.values import FrontMatterValue, is_tagged, unwrap, wrap_mapping

logger = logging.getLogger(__name__)

MERGE_TAG = "tag:yaml.org,2002:merge"


class _UniqueKeyLoader(yaml.SafeLoader):
    """Safe YAML loader that rejects duplicate mapping keys."""

    def construct_mapping(self, node, deep=False):
        if isinstance(node, MappingNode):
            seen = set()
            for key_node, _ in node.value:
                if key_node.tag == MERGE_TAG:
                    continue
                key = self.construct_object(key_node, deep=True)
                try:
                    duplicate = key in seen
                except TypeError:
                    # unhashable keys are reported by the base constructor
                    break
                if duplicate:
                    raise ConstructorError(
                        "while constructing a mapping",
                        node.start_mark,
                        f"found duplicate key {key!r}",
                        key_node.start_mark,
                    )
                seen.add(key)
        return super().construct_mapping(node, deep=deep)


@dataclass(frozen=True)
class ParsedSource:
    """Result of splitting a file into front-matter and body.

    ``key_lines`` maps each top-level front-matter key to its 1-based line in
    the file.
    """

    metadata: dict[str, FrontMatterValue]
    body: str
    has_front_matter: bool
    key_lines: Mapping[str, int] = field(default_factory=dict)


class FrontMatterParser:
    """Parses and serializes YAML front-matter blocks."""

    DELIMITER = "---"
    CLOSING_DELIMITERS = ("---", "...")
    BOM = "\ufeff"

    # The block's first line is the line after the opening delimiter.
    BLOCK_LINE_OFFSET = 2

    def has_front_matter(self, text: str) -> bool:
        """Check whether text opens with a front-matter delimiter line."""
        first_line = text.removeprefix(self.BOM).split("\n", 1)[0]
        return first_line.rstrip() == self.DELIMITER

    def parse(self, text: str, path: str = "<string>") -> ParsedSource:
        """
        Split text into front-matter metadata and body.

        Args:
            text: Raw file text
            path: Source path, used in error messages

        Returns:
            Parsed metadata and body. Text without an opening delimiter is
            returned unchanged as the body, with empty metadata.

        Raises:
            FrontMatterError: If the block is unterminated, is not valid YAML,
                              repeats a key or is not a mapping
        """
        if not self.has_front_matter(text):
            return ParsedSource(metadata={}, body=text, has_front_matter=False)

        lines = text.removeprefix(self.BOM).split("\n")
        closing = None
        for index in range(1, len(lines)):
            if lines[index].rstrip() in self.CLOSING_DELIMITERS:
                closing = index
                break
        if closing is None:
            raise FrontMatterError(path, "Unterminated front-matter block", line=1)

        block = "\n".join(lines[1:closing])
        body = "\n".join(lines[closing + 1:])
        data, key_lines = self._load_block(block, path)

        try:
            metadata = wrap_mapping(data)
        except TypeError as e:
            raise FrontMatterError(path, str(e), line=self.BLOCK_LINE_OFFSET) from e

        logger.debug("Parsed front-matter of %s (%d keys)", path, len(metadata))
        return ParsedSource(
            metadata=metadata,
            body=body,
            has_front_matter=True,
            key_lines=key_lines,
        )

    def _load_block(self, block: str, path: str) -> tuple[dict[str, Any], dict[str, int]]:
        """Load a YAML block, returning the mapping and top-level key lines."""
        loader = _UniqueKeyLoader(block)
        try:
            node = loader.get_single_node()
            data = loader.construct_document(node) if node is not None else None
        except yaml.MarkedYAMLError as e:
            line = self.BLOCK_LINE_OFFSET
            if e.problem_mark is not None:
                line = e.problem_mark.line + self.BLOCK_LINE_OFFSET
            raise FrontMatterError(path, f"Invalid front-matter: {e.problem or e}", line=line) from e
        except yaml.YAMLError as e:
            raise FrontMatterError(path, f"Invalid front-matter: {e}", line=1) from e
        finally:
            loader.dispose()

        if data is None:
            return {}, {}
        if not isinstance(data, dict):
            raise FrontMatterError(
                path, "Front-matter must be a mapping", line=self.BLOCK_LINE_OFFSET
            )

        key_lines = {}
        if isinstance(node, MappingNode):
            for key_node, _ in node.value:
                if isinstance(key_node, ScalarNode):
                    key_lines[key_node.value] = key_node.start_mark.line + self.BLOCK_LINE_OFFSET
        return data, key_lines

    def serialize(self, metadata: Mapping[str, Any], body: str = "") -> str:
        """
        Write metadata and body back into front-matter form.

        Args:
            metadata: Plain or tagged front-matter mapping
            body: Body text

        Returns:
            Text that :meth:`parse` reads back to an equal mapping and body
        """
        data = {
            key: unwrap(value) if is_tagged(value) else value
            for key, value in metadata.items()
        }
        block = ""
        if data:
            block = yaml.safe_dump(
                data, sort_keys=False, allow_unicode=True, default_flow_style=False
            )
        return f"{self.DELIMITER}\n{block}{self.DELIMITER}\n{body}"
