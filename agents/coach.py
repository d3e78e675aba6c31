from datetime import datetime, timedelta
from services.llm import LLMProvider
from prompts.prompt_manager import PromptManager, NO_NUDGE, prompt_manager as default_prompt_manager
from models.inbox_item import InboxStatus, InboxSource
from utils.time_utils import utc_now
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class Coach:
    """
    The Coach periodically looks at active projects and, when the LLM
    thinks one needs a push, leaves a short nudge in the inbox.

    Each project is nudged at most once per cooldown window. The cooldown
    is checked against existing AI_COACH items that mention the project title.
    """

    def __init__(
        self,
        db,
        llm: LLMProvider,
        prompts: Optional[PromptManager] = None,
        cooldown_hours: int = 24,
    ):
        self.db = db
        self.llm = llm
        self.prompts = prompts or default_prompt_manager
        self.cooldown = timedelta(hours=cooldown_hours)

    def run_nudge_sweep(self, now: Optional[datetime] = None) -> dict:
        """
        Nudge every active project that has not been nudged recently

        Returns:
            {
                'projects_checked': int,
                'nudges_created': int,
                'skipped_cooldown': int,
                'errors': int
            }
        """
        now = now or utc_now()
        since = now - self.cooldown

        projects = self.db.get_active_projects()
        logger.info(f"Nudge sweep: {len(projects)} active projects")

        nudges_created = 0
        skipped_cooldown = 0
        errors = 0

        for project in projects:
            try:
                recent = self.db.find_recent_inbox_item(InboxSource.AI_COACH, project.title, since)
                if recent:
                    skipped_cooldown += 1
                    continue

                if self._nudge_project(project):
                    nudges_created += 1
            except Exception as e:
                errors += 1
                logger.error(f"Nudge failed for project {project.id}: {e}", exc_info=True)

        logger.info(
            f"Nudge sweep complete: {nudges_created} created, "
            f"{skipped_cooldown} in cooldown, {errors} errors"
        )

        return {
            'projects_checked': len(projects),
            'nudges_created': nudges_created,
            'skipped_cooldown': skipped_cooldown,
            'errors': errors,
        }

    def _nudge_project(self, project) -> bool:
        prompt = self.prompts.build_project_nudge_prompt(project)
        text = self.llm.generate(prompt).strip()

        if not text or NO_NUDGE in text:
            logger.debug(f"No nudge needed for \"{project.title}\"")
            return False

        # PENDING on purpose: the engine picks it up and completes it next tick
        self.db.create_inbox_item({
            "content": f"NUDGE: \"{project.title}\" {text}",
            "source": InboxSource.AI_COACH,
            "status": InboxStatus.PENDING,
            "user_id": project.user_id,
        })

        logger.info(f"Nudged project \"{project.title}\"")
        return True
