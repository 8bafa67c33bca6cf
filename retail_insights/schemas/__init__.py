"""
retail_insights/schemas package marker.
"""

from retail_insights.schemas.auth import TokenExchangePayload, TokenExchangeResponse
from retail_insights.schemas.campaign import (
    Campaign,
    CreateCampaignRequest,
    CreatePromotionRuleRequest,
    PromotionRule,
    PromotionRuleValidationResult,
)
from retail_insights.schemas.dataset import (
    BivariateVisualization,
    CategoricalStatistics,
    CreateDatasetMasterRequest,
    DatasetListItem,
    DatasetMasterResponse,
    FileUploadResponse,
    NumericalStatistics,
    VariableStatistics,
    parse_variable_statistics,
)
from retail_insights.schemas.decomposition import (
    CampaignImpactAnalysisRequest,
    CampaignImpactAnalysisResponse,
    DecompositionAnalysisRequest,
    DecompositionAnalysisResponse,
    DecompositionCategoriesResponse,
    DecompositionHistoryResponse,
    DecompositionResult,
    DecompositionStatusResponse,
)

__all__ = [
    "BivariateVisualization",
    "Campaign",
    "CampaignImpactAnalysisRequest",
    "CampaignImpactAnalysisResponse",
    "CategoricalStatistics",
    "CreateCampaignRequest",
    "CreateDatasetMasterRequest",
    "CreatePromotionRuleRequest",
    "DatasetListItem",
    "DatasetMasterResponse",
    "DecompositionAnalysisRequest",
    "DecompositionAnalysisResponse",
    "DecompositionCategoriesResponse",
    "DecompositionHistoryResponse",
    "DecompositionResult",
    "DecompositionStatusResponse",
    "FileUploadResponse",
    "NumericalStatistics",
    "PromotionRule",
    "PromotionRuleValidationResult",
    "TokenExchangePayload",
    "TokenExchangeResponse",
    "VariableStatistics",
    "parse_variable_statistics",
]
