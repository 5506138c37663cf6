"""Keep exactly one visible (``is_latest``) article per cluster."""

import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rds_postgres.models import Article

logger = logging.getLogger(__name__)


def optimize_cluster_feed(
    session: Session, cluster_id: int | None, commit: bool = True
) -> int:
    """Flag the newest article of ``cluster_id`` as latest and hide the rest.

    Both updates commit together, so readers never see two latest articles.
    With ``commit=False`` the updates join the caller's open transaction
    and the caller commits. Re-running is harmless.

    Returns:
        Number of articles in the cluster.

    Raises:
        SQLAlchemyError: The transaction failed and was rolled back.
    """
    if not cluster_id:
        return 0

    article_ids = [
        row.id
        for row in session.query(Article.id)
        .filter(Article.cluster_id == cluster_id)
        .order_by(Article.published_at.desc(), Article.id.desc())
        .all()
    ]
    if not article_ids:
        return 0

    latest_id, older_ids = article_ids[0], article_ids[1:]
    try:
        session.execute(update(Article).where(Article.id == latest_id).values(is_latest=True))
        if older_ids:
            session.execute(
                update(Article).where(Article.id.in_(older_ids)).values(is_latest=False)
            )
        if commit:
            session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    logger.info("Cluster %d optimized: 1 visible, %d hidden", cluster_id, len(older_ids))
    return len(article_ids)
