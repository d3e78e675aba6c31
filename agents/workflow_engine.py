from services.llm import LLMProvider
from services.embeddings import EmbeddingsService
from processors.classifier import Classifier
from processors.condition_evaluator import ConditionEvaluator
from processors.action_executor import ActionExecutor
from prompts.prompt_manager import PromptManager, prompt_manager as default_prompt_manager
from models.inbox_item import InboxItem, InboxStatus, InboxSource, ENGINE_MESSAGE_SOURCES
from models.entity import EntityType
from models.audit_log import AuditAction
from models.workflow import WorkflowDefinition, WorkflowTrigger, NotifyAction, AiNudgeAction
from models.classification import ClarifyClassification
from models.execution_context import ExecutionContext, ActionTarget
from utils.time_utils import EPOCH, ensure_aware, utc_now
from typing import Dict, Optional
from datetime import datetime
import logging
import time

logger = logging.getLogger(__name__)

# Action kinds a SCHEDULE workflow may run (no triggering entity to link to)
SCHEDULED_ACTIONS = (NotifyAction, AiNudgeAction)


class WorkflowEngine:
    """Orchestrates inbox processing and workflow execution.

    Per inbox item:
        PENDING -> PROCESSING -> COMPLETED          (confident classification, entity created)
                              -> NEEDS_USER_REVIEW  (low confidence or CLARIFY)
                              -> FAILED             (classifier raised)

    After an entity is created, active ON_CLASSIFY workflows of the owning
    user are matched and run in listing order.
    """

    def __init__(
        self,
        db,
        llm: LLMProvider,
        confidence_threshold: float = 0.8,
        prompts: Optional[PromptManager] = None,
    ):
        self.db = db
        self.llm = llm
        self.confidence_threshold = confidence_threshold
        prompts = prompts or default_prompt_manager

        self.classifier = Classifier(llm, prompts)
        self.condition_evaluator = ConditionEvaluator()
        self.action_executor = ActionExecutor(db, llm, prompts)
        self.embeddings_service = EmbeddingsService(llm)

        logger.info("WorkflowEngine initialized")

    # Inbox processing

    def process_pending_items(self, batch_size: int = 5) -> Dict:
        """Process up to batch_size PENDING items sequentially, in creation order

        Returns:
            Dictionary with batch processing results
        """
        items = self.db.get_pending_items(limit=batch_size)
        total_items = len(items)

        if total_items == 0:
            logger.debug("No pending items to process")
            return {
                'status': 'success',
                'items_processed': 0,
                'items_completed': 0,
                'items_review': 0,
                'items_failed': 0,
            }

        logger.info(f"Processing batch of {total_items} inbox items")

        results = []
        for item in items:
            results.append(self.process_item(item))

        completed = sum(1 for r in results if r['status'] == InboxStatus.COMPLETED.value)
        review = sum(1 for r in results if r['status'] == InboxStatus.NEEDS_USER_REVIEW.value)
        failed = sum(1 for r in results if r['status'] == InboxStatus.FAILED.value)

        logger.info(f"Batch complete: {completed} completed, {review} need review, {failed} failed")

        return {
            'status': 'success',
            'items_processed': total_items,
            'items_completed': completed,
            'items_review': review,
            'items_failed': failed,
            'results': results,
        }

    def process_item(self, item: InboxItem) -> Dict:
        """Run one inbox item through the classification state machine

        Never raises: a classification failure marks the item FAILED so the
        rest of the batch keeps going.
        """
        if not self.db.claim_item(item.id):
            logger.info(f"Item {item.id} already claimed, skipping")
            return {'item_id': item.id, 'status': 'skipped'}

        start_time = time.time()

        # Receipts and nudges are messages, not captures
        if item.source in ENGINE_MESSAGE_SOURCES:
            self.db.update_item(item.id, {"status": InboxStatus.COMPLETED})
            return {'item_id': item.id, 'status': InboxStatus.COMPLETED.value, 'entity_id': None}

        try:
            result = self.classifier.classify(item.content)
        except Exception as e:
            logger.error(f"Error processing item {item.id}: {e}", exc_info=True)
            self.db.update_item(item.id, {
                "status": InboxStatus.FAILED,
                "processing_error": str(e),
            })
            return {'item_id': item.id, 'status': InboxStatus.FAILED.value, 'error': str(e)}

        logger.info(
            f"Classified \"{item.content[:20]}...\" -> {result.type} (Confidence: {result.confidence})"
        )

        try:
            self._write_trust_receipts(item, result)

            # The bouncer: CLARIFY and low confidence go to the user
            if isinstance(result, ClarifyClassification):
                logger.info(f"Clarification needed for item {item.id}: {result.clarification_question}")
                self.db.update_item(item.id, {
                    "status": InboxStatus.NEEDS_USER_REVIEW,
                    "confidence": result.confidence,
                    "processing_error": result.clarification_question,
                })
                return {'item_id': item.id, 'status': InboxStatus.NEEDS_USER_REVIEW.value}

            if result.confidence < self.confidence_threshold:
                logger.info(f"Confidence too low ({result.confidence}). Sent for manual review.")
                self.db.update_item(item.id, {
                    "status": InboxStatus.NEEDS_USER_REVIEW,
                    "confidence": result.confidence,
                    "processing_error": f"Low confidence ({result.confidence}). Suggested: {result.type}",
                })
                return {'item_id': item.id, 'status': InboxStatus.NEEDS_USER_REVIEW.value}

            entity_id = self._create_entity(item, result)
        except Exception as e:
            logger.error(f"Error filing item {item.id}: {e}", exc_info=True)
            self.db.update_item(item.id, {
                "status": InboxStatus.FAILED,
                "processing_error": str(e),
            })
            return {'item_id': item.id, 'status': InboxStatus.FAILED.value, 'error': str(e)}

        self.run_on_classify(entity_id, result.type, item.content, item.user_id)

        elapsed_time = time.time() - start_time
        logger.info(f"Successfully processed item {item.id} in {elapsed_time:.2f}s")

        return {
            'item_id': item.id,
            'status': InboxStatus.COMPLETED.value,
            'entity_id': entity_id,
            'entity_type': result.type,
            'processing_time_seconds': elapsed_time,
        }

    def _write_trust_receipts(self, item: InboxItem, result):
        """Persist the classifier's narratives as user-facing receipts"""
        if result.reasoning:
            self.db.create_inbox_item({
                "content": f"REASONING: {result.reasoning}",
                "source": InboxSource.AI_REASONING,
                "status": InboxStatus.COMPLETED,
                "confidence": result.confidence,
                "user_id": item.user_id,
            })

        if not isinstance(result, ClarifyClassification) and result.routing_strategy:
            self.db.create_inbox_item({
                "content": f"ROUTING: {result.routing_strategy}",
                "source": InboxSource.AI_ROUTING,
                "status": InboxStatus.COMPLETED,
                "confidence": result.confidence,
                "user_id": item.user_id,
            })

    def _create_entity(self, item: InboxItem, result) -> str:
        """Create the entity for a confident classification and close the item"""
        embedding = self.embeddings_service.generate_serialized_embedding(item.content)

        entity_id = self.db.create_entity(
            {
                "title": result.title,
                "content": item.content,
                "type": EntityType(result.type).value,
                "intent": result.intent,
                "summary": result.summary,
                "status": result.status,
                "confidence": result.confidence,
                "embedding": embedding,
                "user_id": item.user_id,
            },
            metadata=result.metadata.model_dump(),
        )
        logger.info(f"Created {result.type} entity '{result.title}': {entity_id}")

        self.db.create_audit_log({
            "action": AuditAction.AI_CLASSIFIED,
            "details": f'Classified "{result.title}" as {result.type}',
            "confidence": result.confidence,
            "entity_id": entity_id,
        })

        self.db.update_item(item.id, {
            "status": InboxStatus.COMPLETED,
            "processed_entity_id": entity_id,
            "confidence": result.confidence,
        })

        self.db.create_inbox_item({
            "content": f"Filed \"{result.title}\" as {result.type} ({result.confidence:.0%} confident)",
            "source": InboxSource.AI_RECEIPT,
            "status": InboxStatus.COMPLETED,
            "confidence": result.confidence,
            "processed_entity_id": entity_id,
            "user_id": item.user_id,
        })

        return entity_id

    # Workflows

    def run_on_classify(
        self,
        entity_id: str,
        entity_type: str,
        content: str,
        user_id: Optional[str] = None,
    ) -> int:
        """Run every matching ON_CLASSIFY workflow for a new entity

        Returns:
            Number of workflows that completed successfully
        """
        logger.info(f"Checking workflows for Entity:{entity_id} ({entity_type})...")

        try:
            workflows = self.db.get_active_workflows(WorkflowTrigger.ON_CLASSIFY, user_id=user_id)
        except Exception as e:
            logger.error(f"Could not load workflows for entity {entity_id}: {e}", exc_info=True)
            return 0

        executed = 0
        for workflow in workflows:
            if not self.condition_evaluator.matches(workflow.conditions, entity_type, content):
                continue

            logger.info(f"Executing Workflow: \"{workflow.name}\"")

            context = ExecutionContext(
                original_content=content,
                entity_type=entity_type,
                entity_id=entity_id,
            )
            target = ActionTarget(entity_id=entity_id, entity_type=entity_type, user_id=user_id)

            if self._run_workflow(workflow, context, target, details=f'Ran "{workflow.name}" on Entity {entity_id}'):
                executed += 1

        return executed

    def run_scheduled_workflows(self, now: Optional[datetime] = None) -> int:
        """Run every due SCHEDULE workflow once

        Returns:
            Number of workflows that ran
        """
        now = now or utc_now()

        try:
            workflows = self.db.get_active_workflows(WorkflowTrigger.SCHEDULE)
        except Exception as e:
            logger.error(f"Could not load scheduled workflows: {e}", exc_info=True)
            return 0

        executed = 0
        for workflow in workflows:
            if not self.is_due(workflow, now):
                continue

            logger.info(f"Running scheduled workflow \"{workflow.name}\" (every {workflow.interval.value})")

            context = ExecutionContext(
                original_content=f'Scheduled check-in from "{workflow.name}"',
                entity_type="SCHEDULE",
            )
            target = ActionTarget(entity_type="SCHEDULE", user_id=workflow.user_id)

            ran = self._run_workflow(
                workflow,
                context,
                target,
                details=f'Ran scheduled "{workflow.name}" (every {workflow.interval.value})',
                allowed=SCHEDULED_ACTIONS,
                now=now,
            )
            if ran:
                executed += 1

        return executed

    @staticmethod
    def is_due(workflow: WorkflowDefinition, now: datetime) -> bool:
        """A SCHEDULE workflow is due once its interval has elapsed since last_run_at"""
        last_run_at = ensure_aware(workflow.last_run_at) if workflow.last_run_at else EPOCH
        return ensure_aware(now) - last_run_at >= workflow.interval.duration

    def _run_workflow(
        self,
        workflow: WorkflowDefinition,
        context: ExecutionContext,
        target: ActionTarget,
        details: str,
        allowed=None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Execute one workflow's chain; errors are logged and audited, never raised"""
        try:
            self.action_executor.execute(
                workflow.actions,
                context,
                target,
                workflow_name=workflow.name,
                workflow_id=workflow.id,
                allowed=allowed,
            )

            if now is not None:
                self.db.update_workflow_last_run(workflow.id, now)

            self.db.create_audit_log({
                "action": AuditAction.WORKFLOW_EXECUTED,
                "details": details,
                "workflow_id": workflow.id,
                "entity_id": target.entity_id,
            })
            return True
        except Exception as e:
            logger.error(f"Error running workflow {workflow.name}: {e}", exc_info=True)
            self._audit_failure(workflow, target, e)
            if now is not None:
                # A failed scheduled run still waits a full interval before retrying
                self._record_last_run(workflow, now)
            return False

    def _record_last_run(self, workflow: WorkflowDefinition, now: datetime):
        try:
            self.db.update_workflow_last_run(workflow.id, now)
        except Exception as e:
            logger.error(f"Could not record last run of workflow {workflow.name}: {e}")

    def _audit_failure(self, workflow: WorkflowDefinition, target: ActionTarget, error: Exception):
        try:
            self.db.create_audit_log({
                "action": AuditAction.WORKFLOW_FAILED,
                "details": f'Workflow "{workflow.name}" aborted: {error}',
                "workflow_id": workflow.id,
                "entity_id": target.entity_id,
            })
        except Exception as e:
            logger.error(f"Could not audit failure of workflow {workflow.name}: {e}")
