from typing import Optional

from .schemas import Chromosome

NO_SOLUTION_MESSAGE = "AI could not find a solution."
NO_CONFLICTS_MESSAGE = "No conflicts to resolve."


def format_plan(plan: Optional[Chromosome]) -> str:
    """Render a plan as one line per conflict decision"""
    if plan is None:
        return NO_SOLUTION_MESSAGE

    fitness = f"{plan.fitness:.2f}" if plan.fitness is not None else "n/a"
    lines = [f"AI Optimal Plan (Fitness: {fitness})"]
    if not plan.decisions:
        lines.append(NO_CONFLICTS_MESSAGE)
    for conflict_id, train_id in plan.decisions.items():
        lines.append(f"At Conflict {conflict_id}, give priority to Train {train_id}.")
    return "\n".join(lines)
