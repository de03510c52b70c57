"""
QTI 2.1 package builder: one assessmentItem XML per question plus an IMS CP manifest, zipped.

Item XML is a pure function of the question and its position, so identical input
always produces identical bytes; only the manifest carries a generation timestamp.
Archives are never rewritten: a rebuild writes a new archive in a new directory.
"""
import hashlib
import json
import logging
import os
import re
import shutil
import tempfile
import uuid
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Callable, Sequence

from quizflow.errors import PackagingError
from quizflow.schemas.question import OPTIONS_PER_QUESTION, Question

logger = logging.getLogger(__name__)

QTI_NS = "http://www.imsglobal.org/xsd/imsqti_v2p1"
QTI_SCHEMA_LOCATION = f"{QTI_NS} http://www.imsglobal.org/xsd/qti/qtiv2p1/imsqti_v2p1.xsd"
IMSCP_NS = "http://www.imsglobal.org/xsd/imscp_v1p1"
IMSMD_NS = "http://ltsc.ieee.org/xsd/LOM"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
IMSCP_SCHEMA_LOCATION = (
    f"{IMSCP_NS} http://www.imsglobal.org/xsd/imscp_v1p1.xsd "
    f"{IMSMD_NS} http://www.imsglobal.org/xsd/imsmd_loose_v1p3p2.xsd"
)

ITEM_RESOURCE_TYPE = "imsqti_item_xmlv2p1"
MANIFEST_NAME = "imsmanifest.xml"
ITEMS_DIR = "items"
CHOICE_IDENTIFIERS = ("A", "B", "C", "D")
WATERMARK_TEXT = "Generated with QuizFlow Free. Upgrade to Pro to remove this notice."

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9_-]+")
_MAX_FILENAME_LEN = 80


@dataclass(frozen=True)
class QuizPackageRequest:
    title: str
    questions: tuple[Question, ...]
    has_watermark: bool
    filename: str


@dataclass(frozen=True)
class GeneratedPackage:
    file_path: str  # relative to the storage root, posix separators
    question_count: int


def sanitize_filename(name: str, default: str = "quiz") -> str:
    """Lowercase and reduce to [a-z0-9_-]; falls back to `default` when nothing is left."""
    base = (name or "").strip().lower()
    if base.endswith(".zip"):
        base = base[:-4]
    base = _UNSAFE_FILENAME_CHARS.sub("_", base).strip("_-")
    base = re.sub(r"_{2,}", "_", base)[:_MAX_FILENAME_LEN].strip("_-")
    return base or default


def item_identifier(question: Question, position: int) -> str:
    """Stable per (position, content): 1-based position plus a short content hash."""
    payload = json.dumps(
        [question.text, list(question.options), question.correct_answer, question.explanation],
        ensure_ascii=False,
    )
    digest = hashlib.sha1(payload.encode("utf-8")).hexdigest()[:10]
    return f"item_{position:03d}_{digest}"


def check_question_shape(question: Question, position: int) -> str:
    """Final shape check; returns the choice identifier of the correct answer."""
    text = (getattr(question, "text", None) or "").strip()
    options = list(getattr(question, "options", None) or [])
    correct = getattr(question, "correct_answer", None)
    if not text:
        raise PackagingError(f"Question {position} has no text")
    if len(options) != OPTIONS_PER_QUESTION:
        raise PackagingError(f"Question {position} must have exactly {OPTIONS_PER_QUESTION} options, got {len(options)}")
    if any(not isinstance(o, str) or not o.strip() for o in options):
        raise PackagingError(f"Question {position} has an empty option")
    if correct not in options:
        raise PackagingError(f"Question {position}: correct answer does not match any option")
    return CHOICE_IDENTIFIERS[options.index(correct)]


def _serialize(root: ET.Element) -> bytes:
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _set_outcome(parent: ET.Element, identifier: str, base_type: str, value: str) -> None:
    setter = ET.SubElement(parent, "setOutcomeValue", {"identifier": identifier})
    ET.SubElement(setter, "baseValue", {"baseType": base_type}).text = value


def build_item_xml(question: Question, position: int, has_watermark: bool) -> tuple[str, bytes]:
    """Return (identifier, assessmentItem XML bytes) for one question."""
    correct_choice = check_question_shape(question, position)
    identifier = item_identifier(question, position)
    has_feedback = bool(question.explanation)

    item = ET.Element(
        "assessmentItem",
        {
            "xmlns": QTI_NS,
            "xmlns:xsi": XSI_NS,
            "xsi:schemaLocation": QTI_SCHEMA_LOCATION,
            "identifier": identifier,
            "title": f"Question {position}",
            "adaptive": "false",
            "timeDependent": "false",
        },
    )
    if has_watermark:
        item.append(ET.Comment(f" {WATERMARK_TEXT} "))

    response = ET.SubElement(
        item, "responseDeclaration", {"identifier": "RESPONSE", "cardinality": "single", "baseType": "identifier"}
    )
    ET.SubElement(ET.SubElement(response, "correctResponse"), "value").text = correct_choice

    score = ET.SubElement(item, "outcomeDeclaration", {"identifier": "SCORE", "cardinality": "single", "baseType": "float"})
    ET.SubElement(ET.SubElement(score, "defaultValue"), "value").text = "0"
    if has_feedback:
        ET.SubElement(item, "outcomeDeclaration", {"identifier": "FEEDBACK", "cardinality": "single", "baseType": "identifier"})

    body = ET.SubElement(item, "itemBody")
    interaction = ET.SubElement(
        body, "choiceInteraction", {"responseIdentifier": "RESPONSE", "shuffle": "false", "maxChoices": "1"}
    )
    ET.SubElement(interaction, "prompt").text = question.text.strip()
    for choice_id, option in zip(CHOICE_IDENTIFIERS, question.options):
        ET.SubElement(interaction, "simpleChoice", {"identifier": choice_id}).text = option
    if has_watermark:
        ET.SubElement(body, "p", {"class": "quizflow-watermark"}).text = WATERMARK_TEXT

    processing = ET.SubElement(item, "responseProcessing")
    condition = ET.SubElement(processing, "responseCondition")
    response_if = ET.SubElement(condition, "responseIf")
    match = ET.SubElement(response_if, "match")
    ET.SubElement(match, "variable", {"identifier": "RESPONSE"})
    ET.SubElement(match, "correct", {"identifier": "RESPONSE"})
    _set_outcome(response_if, "SCORE", "float", "1")
    _set_outcome(ET.SubElement(condition, "responseElse"), "SCORE", "float", "0")
    if has_feedback:
        _set_outcome(processing, "FEEDBACK", "identifier", "EXPLANATION")
        feedback = ET.SubElement(
            item,
            "modalFeedback",
            {"outcomeIdentifier": "FEEDBACK", "identifier": "EXPLANATION", "showHide": "show"},
        )
        feedback.text = question.explanation

    return identifier, _serialize(item)


def _lom_string(parent: ET.Element, tag: str, text: str) -> None:
    ET.SubElement(ET.SubElement(parent, f"imsmd:{tag}"), "imsmd:string").text = text


def build_manifest_xml(
    title: str,
    item_ids: Sequence[str],
    generated_at: datetime,
    has_watermark: bool,
) -> bytes:
    """IMS CP manifest listing item resources in the given order."""
    digest = hashlib.sha1("|".join(item_ids).encode("utf-8")).hexdigest()[:12]
    manifest = ET.Element(
        "manifest",
        {
            "xmlns": IMSCP_NS,
            "xmlns:imsmd": IMSMD_NS,
            "xmlns:xsi": XSI_NS,
            "xsi:schemaLocation": IMSCP_SCHEMA_LOCATION,
            "identifier": f"MANIFEST-{digest}",
        },
    )
    metadata = ET.SubElement(manifest, "metadata")
    ET.SubElement(metadata, "schema").text = "QTIv2.1 Package"
    ET.SubElement(metadata, "schemaversion").text = "1.0.0"
    lom = ET.SubElement(metadata, "imsmd:lom")
    general = ET.SubElement(lom, "imsmd:general")
    _lom_string(general, "title", title)
    description = f"{len(item_ids)} multiple-choice questions"
    if has_watermark:
        description += f". {WATERMARK_TEXT}"
    _lom_string(general, "description", description)
    contribute = ET.SubElement(ET.SubElement(lom, "imsmd:lifeCycle"), "imsmd:contribute")
    ET.SubElement(ET.SubElement(contribute, "imsmd:date"), "imsmd:dateTime").text = (
        generated_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    )

    ET.SubElement(manifest, "organizations")
    resources = ET.SubElement(manifest, "resources")
    for item_id in item_ids:
        href = f"{ITEMS_DIR}/{item_id}.xml"
        resource = ET.SubElement(
            resources, "resource", {"identifier": f"RES-{item_id}", "type": ITEM_RESOURCE_TYPE, "href": href}
        )
        ET.SubElement(resource, "file", {"href": href})
    return _serialize(manifest)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QtiPackageBuilder:
    """Writes QTI ZIP archives under storage_root/packages_dir and hands back relative paths."""

    def __init__(
        self,
        storage_root: Path,
        packages_dir: Path = Path("packages"),
        clock: Callable[[], datetime] = _utcnow,
    ):
        if Path(packages_dir).is_absolute():
            raise ValueError("packages_dir must be relative to storage_root")
        self.storage_root = Path(storage_root).resolve()
        self.packages_dir = Path(packages_dir)
        self._clock = clock

    def resolve_package_path(self, relative_path: str) -> Path:
        """Absolute path for a stored relative package path; rejects paths outside the storage root."""
        path = (self.storage_root / PurePosixPath(relative_path)).resolve()
        if not path.is_relative_to(self.storage_root):
            raise ValueError(f"Package path escapes storage root: {relative_path}")
        return path

    def build_package(
        self,
        title: str,
        questions: Sequence[Question],
        has_watermark: bool,
        filename: str,
    ) -> GeneratedPackage:
        request = QuizPackageRequest(
            title=title,
            questions=tuple(questions or ()),
            has_watermark=bool(has_watermark),
            filename=sanitize_filename(filename),
        )
        return self.build(request)

    def build(self, request: QuizPackageRequest) -> GeneratedPackage:
        """Serialize every item and the manifest, then write them into one new archive."""
        if not request.questions:
            raise PackagingError("Cannot build a QTI package without questions")

        items = [
            build_item_xml(q, position, request.has_watermark)
            for position, q in enumerate(request.questions, start=1)
        ]
        manifest = build_manifest_xml(
            request.title,
            [item_id for item_id, _ in items],
            self._clock(),
            request.has_watermark,
        )

        relative = PurePosixPath(*self.packages_dir.parts, uuid.uuid4().hex, f"{request.filename}.zip")
        target = self.storage_root / relative
        tmp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=target.parent, suffix=".tmp", delete=False) as tmp:
                tmp_name = tmp.name
                with zipfile.ZipFile(tmp, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                    zf.writestr(MANIFEST_NAME, manifest)
                    for item_id, xml in items:
                        zf.writestr(f"{ITEMS_DIR}/{item_id}.xml", xml)
            os.replace(tmp_name, target)
        except OSError as e:
            logger.error("QTI package write failed for %s: %s", relative, e)
            shutil.rmtree(target.parent, ignore_errors=True)
            raise PackagingError(f"Could not write QTI package: {e}") from e

        logger.info(
            "QTI package written: %s (items=%s watermark=%s)", relative, len(items), request.has_watermark
        )
        return GeneratedPackage(file_path=str(relative), question_count=len(items))

    def delete_package(self, relative_path: str | None) -> bool:
        """Best-effort removal of an archive and its directory. Logs and returns False on failure."""
        if not relative_path:
            return False
        try:
            path = self.resolve_package_path(relative_path)
            path.unlink()
            try:
                path.parent.rmdir()
            except OSError:
                pass  # directory not empty or already gone
            return True
        except (OSError, ValueError) as e:
            logger.warning("Could not delete QTI package %s: %s", relative_path, e)
            return False
