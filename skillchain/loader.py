"""
YAML Skill Loader

Reads skill definitions from YAML files:

    name: search_and_summarize
    description: Search and summarize results
    inputs:
      - query
    steps:
      - name: search
        tool: web_search
        arguments:
          query: "{{query}}"
        max_retries: 1
      - name: summarize
        tool: summarize
        arguments:
          text: "{{search}}"
        continue_on_error: true
        timeout_s: 20
"""

import logging
import os
from typing import Any, Dict, List

import yaml

from skillchain.errors import InvalidConfigError
from skillchain.schema import Skill
from skillchain.substitution import find_placeholders

logger = logging.getLogger(__name__)

SKILL_FILE_EXTENSIONS = (".yaml", ".yml")


def undeclared_references(skill: Skill) -> Dict[str, List[str]]:
    """
    Placeholders that name neither a declared input nor an earlier step.

    These resolve only if the caller supplies an undeclared input, otherwise
    they stay in the arguments as literal text.

    Returns:
        Mapping of step name to the unknown names it references
    """
    known = set(skill.inputs)
    unknown: Dict[str, List[str]] = {}
    for step in skill.steps:
        missing = sorted(find_placeholders(step.arguments) - known)
        if missing:
            unknown[step.name] = missing
        known.add(step.name)
    return unknown


def parse_skill(data: Any, source: str = "<memory>") -> Skill:
    """
    Build and validate a Skill from a parsed mapping.

    Args:
        data: Mapping in the skill file layout
        source: Origin used in error messages

    Returns:
        Skill object

    Raises:
        InvalidConfigError: If the mapping is not a valid skill
    """
    try:
        skill = Skill.from_dict(data)
        skill.validate()
    except InvalidConfigError as e:
        raise InvalidConfigError(f"{source}: {e.message}") from e

    for step_name, names in undeclared_references(skill).items():
        logger.warning(
            f"{source}: step '{step_name}' references undeclared variables: {', '.join(names)}"
        )
    return skill


def load_skill(skill_path: str) -> Skill:
    """
    Load Skill from YAML file.

    Args:
        skill_path: Path to skill file

    Returns:
        Skill object

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidConfigError: If the file is not a valid skill
    """
    if not os.path.exists(skill_path):
        raise FileNotFoundError(f"Skill not found: {skill_path}")

    with open(skill_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigError(f"{skill_path}: {e}") from e

    return parse_skill(data, source=skill_path)


def load_skills_from_directory(skill_dir: str, strict: bool = False) -> Dict[str, Skill]:
    """
    Load all skills from a directory.

    Files that fail to load are skipped with a warning unless strict is set.

    Args:
        skill_dir: Directory containing *.yaml / *.yml skill files
        strict: Raise on the first invalid file instead of skipping it

    Returns:
        Dictionary mapping skill names to Skill objects

    Raises:
        InvalidConfigError: If two files define the same skill name,
            or (strict only) a file is invalid
    """
    skills: Dict[str, Skill] = {}
    sources: Dict[str, str] = {}

    for filename in sorted(os.listdir(skill_dir)):
        filepath = os.path.join(skill_dir, filename)
        if not (os.path.isfile(filepath) and filename.endswith(SKILL_FILE_EXTENSIONS)):
            continue

        try:
            skill = load_skill(filepath)
        except InvalidConfigError as e:
            if strict:
                raise
            logger.warning(f"Failed to load skill {filename}: {e}")
            continue

        if skill.name in skills:
            raise InvalidConfigError(
                f"skill '{skill.name}' defined in both {sources[skill.name]} and {filename}"
            )
        skills[skill.name] = skill
        sources[skill.name] = filename

    return skills
