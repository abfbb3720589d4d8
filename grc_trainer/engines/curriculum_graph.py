"""
Curriculum Graph

Immutable view over the curriculum definition files: topics indexed by id
and by domain, domain metadata, learning paths and the prerequisite graph.

The graph is an explicitly constructed value and is passed to whoever needs
it; nothing here caches at module level.

Loading rules:
- Duplicate module ids: the first definition wins, later ones are dropped
- Prerequisites pointing at unknown modules are dropped with a warning
- Path entries pointing at unknown modules are dropped with a warning
- Unknown tiers / module types are kept and rank last
"""

import json
import logging
from collections import defaultdict, deque
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from grc_trainer.models.curriculum_models import DomainInfo, LearningPath, TopicDescriptor


logger = logging.getLogger(__name__)


class CurriculumLoadError(Exception):
    """Raised when a curriculum definition file is unreadable or malformed"""
    def __init__(self, message: str, source: str = ""):
        super().__init__(message)
        self.source = source


class TopicNotFoundError(Exception):
    """Raised when a topic id is not part of the curriculum"""
    def __init__(self, topic_id: str):
        super().__init__(f"Topic not found: {topic_id}")
        self.topic_id = topic_id


PathLike = Union[str, Path]


def _as_tuple(value: Any) -> tuple:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


class CurriculumGraph:
    """Topics, domains, learning paths and prerequisite relations"""

    def __init__(
        self,
        topics: Sequence[TopicDescriptor],
        domains: Sequence[DomainInfo] = (),
        paths: Sequence[LearningPath] = (),
        diagnostics: Sequence[str] = (),
    ):
        self._topics: List[TopicDescriptor] = list(topics)
        self._by_id: Dict[str, TopicDescriptor] = {t.id: t for t in self._topics}
        self._by_domain: Dict[str, List[TopicDescriptor]] = defaultdict(list)
        for topic in self._topics:
            self._by_domain[topic.domain].append(topic)
        self._domains: List[DomainInfo] = list(domains)
        self._paths: Dict[str, LearningPath] = {p.id: p for p in paths}
        self.diagnostics: List[str] = list(diagnostics)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def load(
        cls,
        domain_files: Iterable[PathLike],
        path_files: Iterable[PathLike] = (),
    ) -> "CurriculumGraph":
        """
        Load the curriculum from JSON definition files.

        Args:
            domain_files: One file per domain ({"name", "slug", "description", "modules"})
            path_files: Files holding learning paths ({"paths": [...]} or a bare list)

        Raises:
            CurriculumLoadError: A file is unreadable or not valid JSON
        """
        domains = [_read_json(f) for f in domain_files]

        paths: List[Dict[str, Any]] = []
        for f in path_files:
            data = _read_json(f)
            entries = data.get("paths", []) if isinstance(data, dict) else data
            if not isinstance(entries, list):
                raise CurriculumLoadError("Learning path file must hold a list of paths", str(f))
            paths.extend(entries)

        return cls.from_definitions(domains, paths)

    @classmethod
    def load_directory(cls, directory: PathLike) -> "CurriculumGraph":
        """Load every *.json domain file in a directory; paths.json holds learning paths"""
        directory = Path(directory)
        files = sorted(directory.glob("*.json"))
        domain_files = [f for f in files if f.name != "paths.json"]
        path_files = [f for f in files if f.name == "paths.json"]
        return cls.load(domain_files, path_files)

    @classmethod
    def from_definitions(
        cls,
        domains: Sequence[Dict[str, Any]],
        paths: Sequence[Dict[str, Any]] = (),
    ) -> "CurriculumGraph":
        """Build a graph from already parsed domain and path definitions"""
        diagnostics: List[str] = []
        domain_infos: List[DomainInfo] = []
        raw_topics: List[TopicDescriptor] = []
        seen_ids: Set[str] = set()

        for domain in domains:
            if not isinstance(domain, dict) or not domain.get("name"):
                raise CurriculumLoadError("Domain definition must be an object with a name")
            modules = domain.get("modules", [])
            if not isinstance(modules, list):
                raise CurriculumLoadError(f"Domain {domain['name']}: modules must be a list", domain["name"])

            info = DomainInfo(
                name=domain["name"],
                slug=domain.get("slug", ""),
                description=domain.get("description", ""),
            )
            domain_infos.append(info)

            for module in modules:
                if not isinstance(module, dict) or not module.get("id") or not module.get("title"):
                    raise CurriculumLoadError(f"Domain {info.name}: module without id or title", info.name)
                module_id = module["id"]
                if module_id in seen_ids:
                    message = f"Duplicate module id {module_id} in {info.name}; keeping first definition"
                    logger.warning(f"[CURRICULUM] {message}")
                    diagnostics.append(message)
                    continue
                seen_ids.add(module_id)
                raw_topics.append(TopicDescriptor(
                    id=module_id,
                    title=module["title"],
                    domain=info.name,
                    domain_slug=info.slug,
                    tier=module.get("tier", "foundational"),
                    module_type=module.get("module_type", "core"),
                    objectives=_as_tuple(module.get("objectives")),
                    key_terms=_as_tuple(module.get("key_terms")),
                    prompt_hints=module.get("prompt_hints", ""),
                    competency_ids=_as_tuple(module.get("competency_ids")),
                    prerequisites=_as_tuple(module.get("prerequisites")),
                ))

        topics = []
        for topic in raw_topics:
            kept = tuple(p for p in topic.prerequisites if p in seen_ids)
            for dangling in topic.prerequisites:
                if dangling not in seen_ids:
                    message = f"Dangling prerequisite {dangling} on {topic.id} dropped"
                    logger.warning(f"[CURRICULUM] {message}")
                    diagnostics.append(message)
            if kept != topic.prerequisites:
                topic = replace(topic, prerequisites=kept)
            topics.append(topic)

        learning_paths = []
        for raw in paths:
            if not isinstance(raw, dict) or not raw.get("id"):
                raise CurriculumLoadError("Learning path must be an object with an id")
            module_ids = _as_tuple(raw.get("module_ids"))
            unknown = [m for m in module_ids if m not in seen_ids]
            for module_id in unknown:
                message = f"Learning path {raw['id']} references unknown module {module_id}"
                logger.warning(f"[CURRICULUM] {message}")
                diagnostics.append(message)
            learning_paths.append(LearningPath(
                id=raw["id"],
                title=raw.get("title", raw["id"]),
                description=raw.get("description", ""),
                module_ids=tuple(m for m in module_ids if m in seen_ids),
            ))

        logger.info(
            f"[CURRICULUM] Loaded {len(topics)} topics in {len(domain_infos)} domains, "
            f"{len(learning_paths)} learning paths"
        )
        return cls(topics, domain_infos, learning_paths, diagnostics)

    # =========================================================================
    # Lookups
    # =========================================================================

    def __len__(self) -> int:
        return len(self._topics)

    def __contains__(self, topic_id: str) -> bool:
        return topic_id in self._by_id

    def get_by_id(self, topic_id: str) -> Optional[TopicDescriptor]:
        return self._by_id.get(topic_id)

    def require(self, topic_id: str) -> TopicDescriptor:
        """Like get_by_id, but raises TopicNotFoundError for unknown ids"""
        topic = self._by_id.get(topic_id)
        if topic is None:
            raise TopicNotFoundError(topic_id)
        return topic

    def all_topics(self) -> List[TopicDescriptor]:
        return list(self._topics)

    def topics_in_domain(self, domain: str) -> List[TopicDescriptor]:
        """Topics of a domain, matched by name or slug (case-insensitive)"""
        key = domain.lower()
        for info in self._domains:
            if key in (info.name.lower(), info.slug.lower()):
                return list(self._by_domain.get(info.name, []))
        return []

    def domains(self) -> List[DomainInfo]:
        return list(self._domains)

    def paths(self) -> List[LearningPath]:
        return list(self._paths.values())

    def get_path(self, path_id: str) -> Optional[LearningPath]:
        return self._paths.get(path_id)

    # =========================================================================
    # Prerequisites
    # =========================================================================

    def missing_prerequisites(self, topic_id: str, completed: Iterable[str]) -> List[str]:
        """Prerequisites of a topic not yet completed, in declared order"""
        topic = self.require(topic_id)
        done = set(completed)
        return [p for p in topic.prerequisites if p not in done]

    def prerequisite_closure(self, topic_id: str) -> List[str]:
        """All direct and transitive prerequisites, in topological order"""
        self.require(topic_id)
        closure: Set[str] = set()
        stack = list(self._by_id[topic_id].prerequisites)
        while stack:
            current = stack.pop()
            if current in closure or current == topic_id:
                continue
            closure.add(current)
            stack.extend(self._by_id[current].prerequisites)
        return [t.id for t in self.topological_order() if t.id in closure]

    def topological_order(self) -> List[TopicDescriptor]:
        """
        Order topics so every prerequisite precedes its dependents.

        Kahn's algorithm; among ready topics the lowest (tier, module type,
        title) goes first. Topics caught in a cycle are appended in that same
        order after the acyclic part.
        """
        in_degree: Dict[str, int] = {t.id: 0 for t in self._topics}
        dependents: Dict[str, List[str]] = defaultdict(list)

        for topic in self._topics:
            for prereq_id in topic.prerequisites:
                dependents[prereq_id].append(topic.id)
                in_degree[topic.id] += 1

        def order_key(topic_id: str):
            return self._by_id[topic_id].sort_key + (topic_id,)

        queue = deque(sorted((tid for tid, deg in in_degree.items() if deg == 0), key=order_key))
        ordered: List[str] = []

        while queue:
            current_id = queue.popleft()
            ordered.append(current_id)

            released = []
            for dependent_id in dependents[current_id]:
                in_degree[dependent_id] -= 1
                if in_degree[dependent_id] == 0:
                    released.append(dependent_id)
            if released:
                queue = deque(sorted(list(queue) + released, key=order_key))

        if len(ordered) != len(self._topics):
            remaining = sorted((tid for tid in in_degree if tid not in set(ordered)), key=order_key)
            logger.warning(f"[CURRICULUM] Prerequisite cycle among {remaining}; appending in tier order")
            ordered.extend(remaining)

        return [self._by_id[tid] for tid in ordered]

    # =========================================================================
    # Progress
    # =========================================================================

    def domain_progress(self, completed: Iterable[str]) -> List[Dict[str, Any]]:
        """Per-domain completion totals"""
        done = set(completed)
        progress = []
        for info in self._domains:
            topics = self._by_domain.get(info.name, [])
            completed_count = sum(1 for t in topics if t.id in done)
            progress.append({
                "name": info.name,
                "slug": info.slug,
                "description": info.description,
                "total": len(topics),
                "completed": completed_count,
                "percent": round(completed_count / len(topics) * 100, 1) if topics else 0.0,
            })
        return progress


def _read_json(path: PathLike) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CurriculumLoadError(f"Cannot read curriculum file {path}: {e}", str(path)) from e


DEFAULT_CURRICULUM_DIR = Path(__file__).resolve().parent.parent / "data" / "curriculum"


def load_curriculum(directory: Optional[PathLike] = None) -> CurriculumGraph:
    """Load a fresh graph from a curriculum directory (defaults to the bundled curriculum)"""
    return CurriculumGraph.load_directory(directory or DEFAULT_CURRICULUM_DIR)
