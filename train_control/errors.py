class TrainControlError(Exception):
    """Base class for train control failures"""


class ScenarioError(TrainControlError):
    """Scenario missing, malformed or internally inconsistent"""


class NotFoundError(TrainControlError):
    """A train or station id is not present in the simulation state"""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} {identifier!r} not found")
        self.kind = kind
        self.identifier = identifier


class PlanError(TrainControlError):
    """A plan decision does not name one of its conflict's trains"""
