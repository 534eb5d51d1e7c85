from __future__ import annotations

from shipwright.core.approvals.service import ApprovalGate
from shipwright.core.approvals.store import ApprovalStore
from shipwright.core.clock import Clock, utc_now
from shipwright.core.config.settings import AgentConfig, Settings, load_agent_config, load_settings
from shipwright.core.dedup.cache import InMemoryDedupCache
from shipwright.core.dedup.guard import DedupGuard
from shipwright.core.dedup.store import JsonlDailyPostStore
from shipwright.core.execution.engine import ExecutionEngine
from shipwright.core.execution.handlers import StepCollaborators, StepDispatcher
from shipwright.core.integrations.bridge import IntegrationBridge
from shipwright.core.models.llm_provider import ShipwrightLLM
from shipwright.core.notifications.notifier import Notifier, TaskNotifier, build_notification_router
from shipwright.core.outcomes.ledger import JsonlOutcomeStore, OutcomeLedger, OutcomeStore
from shipwright.core.planning.code import LLMCodeGenerator
from shipwright.core.planning.generator import InsightSource, LLMPlanGenerator, PlanGenerator
from shipwright.core.planning.workflow import PlanWorkflow
from shipwright.core.scheduler.dispatcher import CronDispatcher
from shipwright.core.scheduler.jobs import DigestSource, build_scheduled_jobs
from shipwright.core.tasks.store import TaskStore


class Orchestrator:
    """Builds the task pipeline from settings.

    Every collaborator can be overridden; anything not passed in falls back to
    the LLM generators, the HTTP integration bridge and the configured
    notification channels.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        config: AgentConfig | None = None,
        *,
        plan_generator: PlanGenerator | None = None,
        collaborators: StepCollaborators | None = None,
        notification_router: Notifier | None = None,
        outcome_store: OutcomeStore | None = None,
        digest_source: DigestSource | None = None,
        insight_source: InsightSource | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.config = config or load_agent_config(self.settings.agent_config_path)
        self.clock = clock or utc_now
        state_dir = self.settings.state_dir

        self.task_store = TaskStore(state_dir)
        self.approvals = ApprovalGate(ApprovalStore(state_dir), self.task_store)
        self.ledger = OutcomeLedger(
            outcome_store or JsonlOutcomeStore(state_dir, max_records=self.settings.outcome_ledger_max_records),
            clock=self.clock,
        )
        self.dedup = DedupGuard(
            JsonlDailyPostStore(state_dir),
            cache=InMemoryDedupCache(max_entries=self.settings.dedup_cache_max_entries, clock=self.clock),
            clock=self.clock,
        )
        self.notifier = TaskNotifier(
            notification_router or build_notification_router(self.settings.notifications),
            app_url=self.settings.notifications.app_url,
        )

        self.llm = ShipwrightLLM(self.settings.llm)
        self.bridge = IntegrationBridge(self.settings.integrations)
        self.collaborators = collaborators or StepCollaborators(
            code_generator=LLMCodeGenerator(self.llm),
            code_publisher=self.bridge,
            deployer=self.bridge,
            contract_submitter=self.bridge,
            social_poster=self.bridge,
            other_runner=self.bridge,
        )

        self.workflow = PlanWorkflow(
            task_store=self.task_store,
            approvals=self.approvals,
            generator=plan_generator or LLMPlanGenerator(self.llm),
            ledger=self.ledger,
            notifier=self.notifier,
            config=self.config,
            insight_source=insight_source,
        )
        self.engine = ExecutionEngine(
            task_store=self.task_store,
            approvals=self.approvals,
            dispatcher=StepDispatcher(self.collaborators, self.settings.integrations),
            ledger=self.ledger,
            notifier=self.notifier,
            config=self.config,
        )
        self.dispatcher = CronDispatcher(
            task_store=self.task_store,
            workflow=self.workflow,
            engine=self.engine,
            dedup=self.dedup,
            ledger=self.ledger,
            jobs=build_scheduled_jobs(self.config, self.task_store, self.ledger, digest_source),
            poster=self.collaborators.social_poster,
            config=self.config,
            clock=self.clock,
        )
