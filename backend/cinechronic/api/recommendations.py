from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Dict
import logging

from ..services.recommendation_cache import DailyRecommendationCache
from ..services.recommendation_engine import RecommendationEngine, RecommendationUnavailable
from .deps import get_engine, get_recommendation_cache

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/directors")
async def director_recommendations(
    engine: RecommendationEngine = Depends(get_engine),
    cache: DailyRecommendationCache = Depends(get_recommendation_cache),
) -> Dict[str, Any]:
    """
    Today's director cycles. The batch is generated once per day after the
    configured hour and served from memory until then.
    """
    try:
        entry = await engine.get_daily_recommendations(cache)
        return engine.to_response(entry)
    except RecommendationUnavailable as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Error serving director recommendations: {e}")
        raise HTTPException(status_code=500, detail=f"Error generating recommendations: {str(e)}")
