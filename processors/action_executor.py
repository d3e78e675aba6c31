from services.llm import LLMProvider
from prompts.prompt_manager import PromptManager, fill_reasoning, prompt_manager as default_prompt_manager
from models.workflow import (
    Action,
    CreateEntityAction,
    NotifyAction,
    AiReasoningAction,
    AiNudgeAction,
    UnknownAction,
)
from models.entity import EntityType, ProjectMetadata, PersonMetadata, IdeaMetadata, AdminMetadata
from models.inbox_item import InboxStatus, InboxSource
from models.audit_log import AuditAction
from models.link import LinkType
from models.execution_context import ExecutionContext, ActionTarget
from typing import List, Optional, Tuple, Type
import logging

logger = logging.getLogger(__name__)

DEFAULT_METADATA = {
    EntityType.PROJECT: ProjectMetadata,
    EntityType.PERSON: PersonMetadata,
    EntityType.IDEA: IdeaMetadata,
    EntityType.ADMIN: AdminMetadata,
}


class ActionExecutor:
    """Runs a workflow's ordered action list against one execution context.

    Actions run strictly in list order and each one sees the context left by
    the previous one. The first action that raises aborts the chain - the
    exception propagates to the caller.
    """

    def __init__(self, db, llm: LLMProvider, prompts: Optional[PromptManager] = None):
        self.db = db
        self.llm = llm
        self.prompts = prompts or default_prompt_manager

    def execute(
        self,
        actions: List[Action],
        context: ExecutionContext,
        target: ActionTarget,
        workflow_name: str = "",
        workflow_id: Optional[str] = None,
        allowed: Optional[Tuple[Type, ...]] = None,
    ) -> int:
        """Execute actions in order

        Args:
            actions: Decoded action list (order is significant)
            context: Mutable accumulator shared by the chain
            target: Triggering entity and owner
            workflow_name: For provenance strings
            workflow_id: For audit rows
            allowed: Restrict to these action classes (others are skipped)

        Returns:
            Number of actions executed
        """
        executed = 0

        for action in actions:
            if isinstance(action, UnknownAction):
                logger.debug(f"Skipping unknown action type '{action.type}'")
                continue

            if allowed is not None and not isinstance(action, allowed):
                logger.warning(f"   -> Action '{action.kind}' not supported here, skipped")
                continue

            if isinstance(action, CreateEntityAction):
                self._create_entity(action, context, target, workflow_name)
            elif isinstance(action, NotifyAction):
                self._notify(action, context, target)
            elif isinstance(action, AiReasoningAction):
                self._ai_reasoning(action, context, target)
            elif isinstance(action, AiNudgeAction):
                self._ai_nudge(action, context, target, workflow_name, workflow_id)

            executed += 1

        return executed

    def _create_entity(
        self,
        action: CreateEntityAction,
        context: ExecutionContext,
        target: ActionTarget,
        workflow_name: str,
    ):
        if not target.entity_id:
            logger.warning(f"   -> create_{action.entity_type.value.lower()} needs a source entity, skipped")
            return

        content = context.reasoning_insights or (
            f'Generated by workflow "{workflow_name}" from source entity {target.entity_id}'
        )

        metadata_cls = DEFAULT_METADATA.get(action.entity_type)
        entity_id = self.db.create_entity(
            {
                "title": f"[AUTO] {action.title}",
                "content": content,
                "type": action.entity_type.value,
                "status": "Active",
                "confidence": 1.0,
                "user_id": target.user_id,
            },
            metadata=metadata_cls().model_dump() if metadata_cls else None,
        )

        self.db.create_link({
            "source_id": entity_id,
            "target_id": target.entity_id,
            "type": LinkType.GENERATED_BY,
        })

        logger.info(f"   -> Action: Created {action.entity_type.value} \"{action.title}\" ({entity_id})")

    def _notify(self, action: NotifyAction, context: ExecutionContext, target: ActionTarget):
        text = fill_reasoning(action.message or action.template or "", context.reasoning_insights)

        self.db.create_inbox_item({
            "content": f"WORKFLOW NUDGE: {text}",
            "source": InboxSource.AI_RECEIPT,
            "status": InboxStatus.COMPLETED,
            "confidence": 1.0,
            "processed_entity_id": target.entity_id,
            "user_id": target.user_id,
        })

        logger.info(f"   -> Action: Notification \"{text[:60]}\"")

    def _ai_reasoning(self, action: AiReasoningAction, context: ExecutionContext, target: ActionTarget):
        prompt = self.prompts.build_reasoning_prompt(
            context.entity_type, action.prompt, context.original_content
        )
        insights = self.llm.generate(prompt).strip()
        context.reasoning_insights = insights

        self.db.create_inbox_item({
            "content": f"AI INSIGHT: {insights}",
            "source": InboxSource.AI_COACH,
            "status": InboxStatus.COMPLETED,
            "confidence": 1.0,
            "processed_entity_id": target.entity_id,
            "user_id": target.user_id,
        })

        logger.info(f"   -> Action: Reasoning ({len(insights)} chars)")

    def _ai_nudge(
        self,
        action: AiNudgeAction,
        context: ExecutionContext,
        target: ActionTarget,
        workflow_name: str,
        workflow_id: Optional[str],
    ):
        prompt = self.prompts.build_nudge_prompt(
            context.entity_type,
            context.reasoning_insights,
            action.template,
            context.original_content,
        )
        nudge = self.llm.generate(prompt).strip()

        self.db.create_inbox_item({
            "content": f"COACH NUDGE: {nudge}",
            "source": InboxSource.AI_COACH,
            "status": InboxStatus.COMPLETED,
            "confidence": 1.0,
            "processed_entity_id": target.entity_id,
            "user_id": target.user_id,
        })

        self.db.create_audit_log({
            "action": AuditAction.AI_NUDGE_GENERATED,
            "details": f'Nudge from "{workflow_name}": {nudge}',
            "entity_id": target.entity_id,
            "workflow_id": workflow_id,
        })

        logger.info(f"   -> Action: Nudge \"{nudge[:60]}\"")
