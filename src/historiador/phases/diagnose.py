"""Feature creation diagnosis for the `diagnose` command."""

from ..jira import FeatureManager, JiraClientError
from .process_files import PipelineError


def diagnose_features(feature_manager: FeatureManager, project_key: str) -> list[str]:
    """Required fields that automatic feature creation has to fill in."""
    try:
        return feature_manager.validate_feature_required_fields(project_key)
    except JiraClientError as e:
        raise PipelineError(f"error diagnosing features: {e}") from e
