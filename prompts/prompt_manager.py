import yaml
import os
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

REASONING_PLACEHOLDER = "{{reasoning}}"
NO_NUDGE = "NO_NUDGE"


def fill_reasoning(template: str, reasoning_insights: str) -> str:
    """Replace the literal {{reasoning}} placeholder when insights are present"""
    if reasoning_insights:
        return template.replace(REASONING_PLACEHOLDER, reasoning_insights)
    return template


class PromptManager:
    """
    Manages prompt templates with hot-reload support

    Loads prompts from YAML files and provides methods to build
    the classifier, reasoning, nudge and project-nudge prompts.
    """

    def __init__(self, prompts_dir: Optional[str] = None):
        if prompts_dir is None:
            # Default to prompts/ directory in the same location as this file
            prompts_dir = Path(__file__).parent

        self.prompts_dir = Path(prompts_dir)
        self.cache: Dict[str, Dict[str, Any]] = {}
        logger.info(f"PromptManager initialized with directory: {self.prompts_dir}")

    def get_prompt_config(self, prompt_name: str) -> Dict[str, Any]:
        """
        Load prompt configuration from YAML file with hot-reload support

        Args:
            prompt_name: Name of the prompt file (without .yaml extension)

        Returns:
            Dictionary containing the prompt configuration
        """
        filepath = self.prompts_dir / f"{prompt_name}.yaml"

        if not filepath.exists():
            raise FileNotFoundError(f"Prompt file not found: {filepath}")

        # Get file modification time for hot-reload
        mtime = os.path.getmtime(filepath)

        cache_key = prompt_name

        # Check if we need to reload (file changed or not in cache)
        if cache_key not in self.cache or self.cache[cache_key].get('mtime') != mtime:
            logger.info(f"Loading/reloading prompt: {prompt_name}")
            with open(filepath, 'r') as f:
                config = yaml.safe_load(f)

            self.cache[cache_key] = {
                'data': config,
                'mtime': mtime
            }

        return self.cache[cache_key]['data']

    def build_classification_prompt(self, content: str) -> str:
        """Build the Sorter prompt. The raw input is always the last section."""
        config = self.get_prompt_config("classifier")

        sections = [config['system_role'].strip()]

        for type_name, description in config.get('types', {}).items():
            sections.append(f"- {type_name}: {description}")

        if config.get('instructions'):
            sections.append("\nINSTRUCTIONS:")
            for i, instruction in enumerate(config['instructions'], 1):
                sections.append(f"{i}. {instruction}")

        sections.append(f"\n{config['output_format'].strip()}")
        sections.append(f"\nInput: {content}")

        return "\n".join(sections)

    def build_reasoning_prompt(self, entity_type: str, instruction: str, content: str) -> str:
        """Build the ai_reasoning prompt for one action"""
        config = self.get_prompt_config("reasoning")

        return "\n".join([
            config['system_role'].format(entity_type=entity_type).strip(),
            f"\n{config['instruction_header']}",
            instruction,
            f"\n{config['content_header']}",
            content,
            f"\n{config['final_instruction']}",
        ])

    def build_nudge_prompt(
        self,
        entity_type: str,
        reasoning_insights: str,
        template: str,
        content: str
    ) -> str:
        """Build the coach-persona ai_nudge prompt"""
        config = self.get_prompt_config("nudge")

        sections = [config['system_role'].format(entity_type=entity_type).strip()]

        if reasoning_insights:
            sections.append(f"\n{config['insights_header']}")
            sections.append(reasoning_insights)

        sections.append(f"\n{config['instruction_header']}")
        sections.append(fill_reasoning(template, reasoning_insights))
        sections.append(f"\n{config['content_header']}")
        sections.append(content)
        sections.append(f"\n{config['final_instruction']}")

        return "\n".join(sections)

    def build_project_nudge_prompt(self, project) -> str:
        """Build the nudge-sweep prompt for one active project entity"""
        config = self.get_prompt_config("project_nudge")

        sections = [config['system_role'].strip(), ""]
        sections.append(config['project_format'].format(
            title=project.title,
            summary=project.summary or 'N/A',
            status=project.status or 'Active',
            updated_at=project.updated_at.isoformat() if project.updated_at else 'unknown',
        ).strip())

        sections.append("\nINSTRUCTIONS:")
        for instruction in config.get('instructions', []):
            sections.append(f"- {instruction.format(no_nudge=NO_NUDGE)}")

        return "\n".join(sections)


# Singleton instance
prompt_manager = PromptManager()
