"""Built-in board templates and idempotent board creation from them."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.errors.exceptions import ValidationError
from bidboard.models.board import BoardConfig
from bidboard.repositories.board_repo import KanbanConfigRepository
from bidboard.repositories.record_store import KANBAN_CONFIG, row_to_record
from bidboard.services.id_generator import generate_id
from bidboard.services.kanban.validation import validate_board

logger = logging.getLogger(__name__)

FINAL_APPROVER_ROLES = ["organization_owner", "proposal_manager"]


def _item(
    item_id: str,
    label: str,
    kind: str = "manual_check",
    required: bool = True,
    action: str | None = None,
) -> dict:
    return {
        "id": item_id,
        "label": label,
        "kind": kind,
        "required": required,
        "associated_action": action,
    }


def _terminal(column_id: str, label: str, status: str | None = None) -> dict:
    return {
        "id": column_id,
        "label": label,
        "type": "default_status",
        "default_status_mapping": status or column_id,
        "is_terminal": True,
    }


def _stage(column_id: str, label: str, **extra) -> dict:
    return {"id": column_id, "label": label, "type": "custom_stage", **extra}


def _phase(column_id: str, label: str, phase: str, **extra) -> dict:
    return {"id": column_id, "label": label, "type": "locked_phase", "phase_mapping": phase, **extra}


def _status(column_id: str, label: str, status: str) -> dict:
    return {"id": column_id, "label": label, "type": "default_status", "default_status_mapping": status}


_TERMINALS = [
    _terminal("submitted", "Submitted"),
    _terminal("won", "Won"),
    _terminal("lost", "Lost"),
    _terminal("archived", "Archived"),
]

RFP_15_COLUMNS = [
    _stage("initiate", "Initiate", checklist_items=[
        _item("enter_basic_info", "Enter Basic Info", "modal_trigger", action="open_basic_info_modal"),
        _item("set_timeline", "Set Timeline", "modal_trigger", action="open_basic_info_modal"),
    ]),
    _stage("team", "Team", checklist_items=[
        _item("select_prime", "Select Prime Contractor", "modal_trigger", action="open_team_modal"),
        _item("add_partners", "Add Teaming Partners", "modal_trigger", required=False, action="open_team_modal"),
        _item("assign_lead_writer", "Assign Lead Writer", "modal_trigger", action="open_team_modal"),
    ]),
    _stage("resources", "Resources", checklist_items=[
        _item("upload_capability_statement", "Upload Capability Statement", "modal_trigger"),
        _item("link_past_performance", "Link Past Performance", "modal_trigger"),
        _item("gather_boilerplate", "Gather Boilerplate Content", "modal_trigger", required=False),
    ]),
    _stage("solicitation", "Solicitation", checklist_items=[
        _item("upload_rfp", "Upload RFP Document", "modal_trigger"),
        _item("extract_requirements", "Extract Requirements", "ai_trigger"),
        _item("identify_page_limits", "Identify Page Limits"),
    ]),
    _stage("evaluation", "Evaluation", checklist_items=[
        _item("run_strategic_analysis", "Run Strategic Analysis", "ai_trigger"),
        _item("calculate_match_score", "Calculate Match Score", "system_check"),
        _item("review_evaluation_results", "Review Evaluation Results"),
    ]),
    _stage("strategy", "Strategy", checklist_items=[
        _item("develop_win_themes", "Develop Win Themes", "ai_trigger"),
        _item("competitive_analysis", "Competitive Analysis", "ai_trigger"),
        _item("approve_strategy", "Approve Strategy"),
    ]),
    _stage("planning", "Planning", checklist_items=[
        _item("create_section_outline", "Create Section Outline", "ai_trigger"),
        _item("assign_sections_to_writers", "Assign Sections to Writers"),
        _item("set_section_deadlines", "Set Section Deadlines", required=False),
    ]),
    _stage("writing", "Writing", checklist_items=[
        _item("draft_all_sections", "Draft All Sections"),
        _item("review_compliance", "Review Compliance", "ai_trigger"),
        _item("approve_content", "Approve Content"),
    ]),
    _stage("pricing", "Pricing", checklist_items=[
        _item("build_labor_rates", "Build Labor Rates"),
        _item("create_clins", "Create CLINs"),
        _item("calculate_total_price", "Calculate Total Price", "system_check"),
    ]),
    _stage("review", "Review", checklist_items=[
        _item("red_team_review", "Red Team Review"),
        _item("compliance_final_check", "Compliance Final Check", "ai_trigger"),
        _item("final_approval", "Final Approval"),
    ]),
    _stage(
        "final", "Final",
        requires_approval_to_exit=True,
        approver_roles=FINAL_APPROVER_ROLES,
        checklist_items=[
            _item("export_pdf", "Export PDF", "modal_trigger"),
            _item("submission_checklist", "Submission Checklist"),
            _item("final_signoff", "Final Sign-off"),
        ],
    ),
    *_TERMINALS,
]

PHASE_WORKFLOW_COLUMNS = [
    _phase("initiate", "Initiate", "phase1", checklist_items=[
        _item("basic_info", "Enter Basic Information", "modal_trigger", action="open_basic_info_modal"),
        _item("solicitation_number", "Add Solicitation Number"),
        _item("agency_project", "Set Agency & Project Details"),
    ]),
    _phase("team", "Team", "phase1", checklist_items=[
        _item("select_prime", "Select Prime Contractor", "modal_trigger"),
        _item("add_teaming", "Add Teaming Partners", "modal_trigger", required=False),
    ]),
    _phase("resources", "Resources", "phase2", checklist_items=[
        _item("link_boilerplate", "Link Boilerplate Content", "modal_trigger", required=False),
        _item("link_past_performance", "Link Past Performance", "modal_trigger", required=False),
    ]),
    _phase("solicit", "Solicit", "phase3", checklist_items=[
        _item("upload_rfp", "Upload RFP/Solicitation", "modal_trigger"),
        _item("ai_extract", "AI Extract Key Details", "ai_trigger", required=False),
        _item("confirm_details", "Confirm Due Date & Value"),
    ]),
    _phase("evaluate", "Evaluate", "phase4", checklist_items=[
        _item("run_evaluation", "Run Strategic Evaluation", "modal_trigger"),
        _item("make_decision", "Make Go/No-Go Decision"),
        _item("competitor_intel", "Gather Competitor Intelligence", required=False),
    ]),
    _phase("strategy", "Strategy", "phase5", checklist_items=[
        _item("generate_themes", "Generate Win Themes", "modal_trigger"),
        _item("refine_themes", "Refine & Approve Themes"),
    ]),
    _phase("plan", "Plan", "phase5", checklist_items=[
        _item("select_sections", "Select Proposal Sections", "modal_trigger"),
        _item("set_strategy", "Set Writing Strategy"),
    ]),
    _phase("draft", "Draft", "phase6", checklist_items=[
        _item("start_writing", "Start Content Development", "modal_trigger"),
        _item("ai_generate", "AI Generate Sections", "ai_trigger", required=False),
        _item("complete_sections", "Complete All Sections", "system_check"),
    ]),
    _phase("price", "Price", "phase7", checklist_items=[
        _item("build_pricing", "Build Pricing Model", "modal_trigger"),
        _item("review_pricing", "Review Pricing Strategy", "modal_trigger", required=False),
        _item("finalize_price", "Finalize Pricing"),
    ]),
    _phase("review", "Review", "phase7", checklist_items=[
        _item("internal_review", "Complete Internal Review", "modal_trigger"),
        _item("red_team", "Conduct Red Team Review", "modal_trigger", required=False),
    ]),
    _phase(
        "final", "Final", "phase7",
        requires_approval_to_exit=True,
        approver_roles=FINAL_APPROVER_ROLES,
        checklist_items=[
            _item("readiness_check", "Run Submission Readiness", "modal_trigger"),
            _item("executive_review", "Final Executive Review"),
            _item("export_proposal", "Export Proposal", "modal_trigger", required=False),
        ],
    ),
    *_TERMINALS,
]

MASTER_COLUMNS = [
    {"id": "pipeline", "label": "Pipeline", "type": "master_status", "status_mapping": ["evaluating"]},
    {"id": "active", "label": "Active", "type": "master_status", "status_mapping": ["in_progress", "draft"]},
    *(
        {"id": s, "label": s.title(), "type": "master_status", "status_mapping": [s], "is_terminal": True}
        for s in ("submitted", "won", "lost", "archived")
    ),
]

BOARD_TEMPLATES: dict[str, dict] = {
    "rfp": {
        "board_name": "RFP Board",
        "applies_to_proposal_types": ["RFP"],
        "columns": [
            _phase("rfp_initiate", "Initiate", "phase1"),
            _phase("rfp_team", "Team Setup", "phase2"),
            _phase("rfp_resources", "Gather Resources", "phase3"),
            _phase("rfp_solicit", "Upload Solicitation", "phase4"),
            _phase("rfp_evaluate", "Evaluate", "phase5"),
            _phase("rfp_strategy", "Develop Strategy", "phase6"),
            _phase("rfp_write", "Write Content", "phase7"),
            _stage("rfp_price", "Build Pricing"),
            *_TERMINALS,
        ],
    },
    "rfi": {
        "board_name": "RFI Board",
        "applies_to_proposal_types": ["RFI"],
        "columns": [
            _status("rfi_new", "New", "evaluating"),
            _stage("rfi_gather", "Gather Info"),
            _status("rfi_draft", "Draft Response", "draft"),
            _status("rfi_review", "Internal Review", "in_progress"),
            _terminal("submitted", "Submitted"),
            _terminal("archived", "Archived"),
        ],
    },
    "sbir": {
        "board_name": "SBIR/STTR Board",
        "applies_to_proposal_types": ["SBIR"],
        "columns": [
            _stage("sbir_concept", "Concept Development"),
            _stage("sbir_research", "Research Plan"),
            _stage("sbir_tech", "Technical Approach"),
            _stage("sbir_commercial", "Commercialization"),
            _stage("sbir_budget", "Budget Build"),
            _stage("sbir_final", "Final Review"),
            _terminal("submitted", "Submitted"),
            _terminal("won", "Awarded"),
            _terminal("lost", "Not Selected"),
        ],
    },
    "gsa": {
        "board_name": "GSA Schedule Board",
        "applies_to_proposal_types": ["GSA"],
        "columns": [
            _stage("gsa_prep", "Preparation"),
            _stage("gsa_pricing", "Pricing Matrix"),
            _stage("gsa_compliance", "Compliance Check"),
            _stage("gsa_docs", "Documentation"),
            _terminal("submitted", "Submitted"),
            _terminal("won", "Approved"),
            _terminal("archived", "Archived"),
        ],
    },
    "idiq": {
        "board_name": "IDIQ/BPA Board",
        "applies_to_proposal_types": ["IDIQ"],
        "columns": [
            _stage("idiq_qualify", "Qualification"),
            _stage("idiq_capability", "Capability Statement"),
            _stage("idiq_pricing", "Pricing Strategy"),
            _stage("idiq_past_perf", "Past Performance"),
            _stage("idiq_final", "Final Package"),
            _terminal("submitted", "Submitted"),
            _terminal("won", "Awarded"),
            _terminal("archived", "Archived"),
        ],
    },
    "state_local": {
        "board_name": "State/Local Board",
        "applies_to_proposal_types": ["STATE_LOCAL"],
        "columns": [
            _status("sl_new", "New Opportunity", "evaluating"),
            _stage("sl_prep", "Prep & Research"),
            _status("sl_draft", "Draft Proposal", "draft"),
            _status("sl_review", "Review", "in_progress"),
            _terminal("submitted", "Submitted"),
            _terminal("won", "Won"),
            _terminal("lost", "Lost"),
        ],
    },
    "rfp_15_column": {
        "board_name": "RFP Workflow (15-Column)",
        "applies_to_proposal_types": ["RFP"],
        "columns": RFP_15_COLUMNS,
    },
    "phase_workflow": {
        "board_name": "Proposal Workflow",
        "applies_to_proposal_types": [],
        "columns": PHASE_WORKFLOW_COLUMNS,
    },
    "master": {
        "board_name": "All Proposals",
        "is_master_board": True,
        "applies_to_proposal_types": [],
        "columns": MASTER_COLUMNS,
    },
}


def template_columns(board_type: str) -> list[dict]:
    """Fresh column dicts for a template, with order, lock and WIP defaults filled in."""
    template = BOARD_TEMPLATES.get(board_type)
    if template is None:
        valid = ", ".join(sorted(BOARD_TEMPLATES))
        raise ValidationError(
            f"Unknown board type '{board_type}'. Must be one of: {valid}",
            details={"board_type": board_type},
        )
    columns = []
    for order, column in enumerate(template["columns"]):
        col = {**column, "order": order}
        col["checklist_items"] = [{**item, "order": i} for i, item in enumerate(column.get("checklist_items", []))]
        col["is_locked"] = col["type"] == "locked_phase" or bool(col.get("is_terminal"))
        col.setdefault("wip_limit", 0)
        columns.append(col)
    return columns


def build_board(organization_id: str, board_type: str, board_name: str | None = None) -> BoardConfig:
    columns = template_columns(board_type)
    template = BOARD_TEMPLATES[board_type]
    return BoardConfig(
        board_id=generate_id("board_"),
        organization_id=organization_id,
        board_name=board_name or template["board_name"],
        board_type=board_type,
        is_master_board=template.get("is_master_board", False),
        applies_to_proposal_types=list(template["applies_to_proposal_types"]),
        columns=columns,
    )


async def create_board_from_template(
    session: AsyncSession,
    organization_id: str,
    board_type: str,
    board_name: str | None = None,
) -> tuple[dict, bool]:
    """Create an organization's board of ``board_type`` unless it already exists.

    Returns (board record, was_created). Flushes without committing.
    """
    repo = KanbanConfigRepository(session)
    existing = await repo.get_by_type(organization_id, board_type)
    if existing is not None:
        return row_to_record(KANBAN_CONFIG, existing), False

    board = build_board(organization_id, board_type, board_name)
    report = validate_board(board)
    if not report.valid:
        # Built-in templates are expected to be valid
        raise ValidationError(f"Template '{board_type}' is invalid", details=report.to_dict())

    row = await repo.create(
        board_id=board.board_id,
        organization_id=organization_id,
        board_name=board.board_name,
        board_type=board_type,
        is_master_board=board.is_master_board,
        applies_to_proposal_types=board.applies_to_proposal_types,
        board_columns=[c.model_dump(mode="json") for c in board.columns],
        collapsed_column_ids=[],
    )
    logger.info("Created %s board %s for organization %s", board_type, board.board_id, organization_id)
    return row_to_record(KANBAN_CONFIG, row), True


async def seed_default_boards(session: AsyncSession, organization_id: str) -> list[str]:
    """Create the master board and the 15-column RFP board for an organization."""
    created = []
    for board_type in ("master", "rfp_15_column"):
        record, was_created = await create_board_from_template(session, organization_id, board_type)
        if was_created:
            created.append(record["board_id"])
    return created

