# src/sasspipe/core/sourcemap.py
"""
Source map v3 helpers used on both sides of the compile stage.

`init_source_map` plays the upstream role (request a map for a file),
`apply_source_map` attaches a freshly produced map, composing it with any
map the file already carries so positions chain back to the real originals.
"""
import json
from typing import Dict, List, Optional, Sequence, Tuple, Union

from sasspipe.models import File

BASE64_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
BASE64_INDEX = {char: i for i, char in enumerate(BASE64_CHARS)}

VLQ_SHIFT = 5
VLQ_CONTINUATION = 1 << VLQ_SHIFT
VLQ_MASK = VLQ_CONTINUATION - 1

# (generated_column,) or (generated_column, source, line, column[, name])
Segment = Tuple[int, ...]


def decode_vlq(text: str) -> List[int]:
    values = []
    value = shift = 0
    for char in text:
        try:
            digit = BASE64_INDEX[char]
        except KeyError:
            raise ValueError(f"Invalid base64 VLQ character: {char!r}") from None
        value += (digit & VLQ_MASK) << shift
        if digit & VLQ_CONTINUATION:
            shift += VLQ_SHIFT
            continue
        negative = value & 1
        value >>= 1
        values.append(-value if negative else value)
        value = shift = 0
    if shift:
        raise ValueError(f"Truncated base64 VLQ segment: {text!r}")
    return values


def encode_vlq(value: int) -> str:
    vlq = ((-value) << 1) + 1 if value < 0 else value << 1
    chars = []
    while True:
        digit = vlq & VLQ_MASK
        vlq >>= VLQ_SHIFT
        if vlq:
            digit |= VLQ_CONTINUATION
        chars.append(BASE64_CHARS[digit])
        if not vlq:
            return "".join(chars)


def decode_mappings(mappings: str) -> List[List[Segment]]:
    """Decodes a `mappings` string into absolute segments, one list per line."""
    lines: List[List[Segment]] = []
    source = line = column = name = 0
    for encoded_line in mappings.split(";"):
        segments: List[Segment] = []
        generated_column = 0
        for chunk in encoded_line.split(","):
            if not chunk:
                continue
            fields = decode_vlq(chunk)
            generated_column += fields[0]
            if len(fields) == 1:
                segments.append((generated_column,))
                continue
            source += fields[1]
            line += fields[2]
            column += fields[3]
            if len(fields) >= 5:
                name += fields[4]
                segments.append((generated_column, source, line, column, name))
            else:
                segments.append((generated_column, source, line, column))
        lines.append(segments)
    return lines


def encode_mappings(lines: Sequence[Sequence[Segment]]) -> str:
    encoded_lines = []
    previous = [0, 0, 0, 0]  # source, line, column, name carry across lines
    for segments in lines:
        generated_column = 0
        chunks = []
        for segment in segments:
            parts = [encode_vlq(segment[0] - generated_column)]
            generated_column = segment[0]
            for i, value in enumerate(segment[1:]):
                parts.append(encode_vlq(value - previous[i]))
                previous[i] = value
            chunks.append("".join(parts))
        encoded_lines.append(",".join(chunks))
    return ";".join(encoded_lines)


def original_position(lines: List[List[Segment]], line: int, column: int) -> Optional[Segment]:
    """Greatest-lower-bound lookup of a generated position."""
    if line < 0 or line >= len(lines):
        return None
    found = None
    for segment in lines[line]:
        if segment[0] > column:
            break
        if len(segment) > 1:
            found = segment
    return found


def keep_sources(mappings: str, keep: Sequence[int]) -> str:
    """
    Rewrites `mappings` for a `sources` list reduced to the indices in `keep`.
    Segments pointing at a dropped source are removed, the rest renumbered.
    """
    renumber = {old: new for new, old in enumerate(keep)}
    lines = []
    for segments in decode_mappings(mappings):
        kept = []
        for segment in segments:
            if len(segment) == 1:
                kept.append(segment)
            elif segment[1] in renumber:
                kept.append((segment[0], renumber[segment[1]]) + segment[2:])
        lines.append(kept)
    return encode_mappings(lines)


def init_source_map(file: File) -> Dict:
    """Marks a file as wanting a source map: an identity map with no mappings."""
    contents = file.contents.decode("utf-8") if file.is_buffer() else None
    file.source_map = {
        "version": 3,
        "file": file.relative,
        "names": [],
        "mappings": "",
        "sources": [file.relative],
        "sourcesContent": [contents],
    }
    return file.source_map


def compose(outer: Dict, inner: Dict) -> Dict:
    """
    Resolves `outer` through `inner`.

    Segments of `outer` pointing at `inner["file"]` are traced back to
    `inner`'s own sources. Segments that cannot be traced keep their
    position in `outer`.
    """
    target = inner.get("file")
    inner_lines = decode_mappings(inner.get("mappings", ""))
    inner_sources = inner.get("sources", [])
    inner_contents = inner.get("sourcesContent") or []
    inner_names = inner.get("names", [])
    outer_sources = outer.get("sources", [])
    outer_contents = outer.get("sourcesContent") or []
    outer_names = outer.get("names", [])

    sources: List[str] = []
    contents: List[Optional[str]] = []
    names: List[str] = []

    def source_index(source: str, content: Optional[str]) -> int:
        if source not in sources:
            sources.append(source)
            contents.append(content)
        elif content is not None:
            contents[sources.index(source)] = content
        return sources.index(source)

    def name_index(name: str) -> int:
        if name not in names:
            names.append(name)
        return names.index(name)

    lines = []
    for segments in decode_mappings(outer.get("mappings", "")):
        composed = []
        for segment in segments:
            if len(segment) == 1:
                composed.append(segment)
                continue
            source = outer_sources[segment[1]]
            content = _at(outer_contents, segment[1])
            line, column = segment[2], segment[3]
            name = outer_names[segment[4]] if len(segment) == 5 else None

            if source == target:
                found = original_position(inner_lines, line, column)
                if found is not None:
                    source = inner_sources[found[1]]
                    content = _at(inner_contents, found[1])
                    line, column = found[2], found[3]
                    if len(found) == 5:
                        name = inner_names[found[4]]

            mapped = (segment[0], source_index(source, content), line, column)
            if name is not None:
                mapped += (name_index(name),)
            composed.append(mapped)
        lines.append(composed)

    result = {
        "version": 3,
        "file": outer.get("file"),
        "sources": sources,
        "names": names,
        "mappings": encode_mappings(lines),
    }
    if any(content is not None for content in contents):
        result["sourcesContent"] = contents
    return result


def apply_source_map(file: File, source_map: Union[str, Dict]) -> None:
    """Attaches `source_map` to `file`, chaining through any existing map."""
    if isinstance(source_map, str):
        source_map = json.loads(source_map)
    if not source_map.get("file"):
        raise ValueError('Source map to be applied is missing the "file" property')

    if file.source_map and file.source_map.get("mappings"):
        file.source_map = compose(source_map, file.source_map)
    else:
        file.source_map = source_map


def _at(items: Sequence, index: int):
    return items[index] if index < len(items) else None
