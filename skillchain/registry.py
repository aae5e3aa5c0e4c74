"""
Skill Registry for managing and discovering skills
"""

import logging
from typing import Dict, List, Optional

from skillchain.errors import SkillNotFoundError
from skillchain.schema import Skill

logger = logging.getLogger(__name__)


class SkillRegistry:
    """
    Registry of skills by name.

    Registering a skill with an existing name replaces the earlier one.
    """

    def __init__(self):
        self._skills: Dict[str, Skill] = {}

    def register(self, skill: Skill) -> None:
        """
        Register a skill.

        Raises:
            InvalidConfigError: If the skill fails validation
        """
        skill.validate()
        if skill.name in self._skills:
            logger.info(f"Replacing registered skill '{skill.name}'")
        self._skills[skill.name] = skill

    def register_all(self, skills: Dict[str, Skill]) -> None:
        for skill in skills.values():
            self.register(skill)

    def unregister(self, name: str) -> Optional[Skill]:
        """Remove a skill, returning it if it was registered"""
        return self._skills.pop(name, None)

    def get(self, name: str) -> Optional[Skill]:
        return self._skills.get(name)

    def require(self, name: str) -> Skill:
        """
        Get a skill that must exist.

        Raises:
            SkillNotFoundError: If no skill has that name
        """
        skill = self._skills.get(name)
        if skill is None:
            raise SkillNotFoundError(name)
        return skill

    def list(self) -> List[str]:
        return sorted(self._skills)

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, name: str) -> bool:
        return name in self._skills
