"""
Auto-publish Sweep
Publishes `scheduled` posts that opted into auto_publish once their local
date/time has passed. Each post gets one attempt; a failure leaves it
`failed` for the user to retry by hand.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from social_scheduler.models.posts import PostStatus
from social_scheduler.services import post_service
from social_scheduler.services.platform_publisher import PlatformPublisher, get_platform_publisher
from social_scheduler.utils.database import POSTS_TABLE, get_supabase_client
from social_scheduler.utils.timezone import DATE_FORMAT, slot_to_utc

logger = logging.getLogger(__name__)


def is_due(post: Dict[str, Any], now: datetime) -> bool:
    """True when the post's slot, read in its own timezone, is not after now"""
    try:
        return slot_to_utc(post['date'], post.get('time') or '09:00', post.get('timezone') or 'UTC') <= now
    except (ValueError, KeyError) as e:
        logger.error(f"Post {post.get('id')} has an unreadable slot: {e}")
        return False


class PostScheduler:
    """Finds due posts and publishes them"""

    def __init__(self, db, publisher: Optional[PlatformPublisher] = None):
        self.db = db
        self.publisher = publisher or PlatformPublisher()

    def find_due_posts(self, now: datetime) -> List[Dict[str, Any]]:
        # Zones run up to UTC+14, so a slot dated tomorrow (UTC) can already be due
        latest_date = (now + timedelta(hours=14)).strftime(DATE_FORMAT)
        response = self.db.table(POSTS_TABLE).select('*').eq(
            'status', PostStatus.SCHEDULED.value
        ).eq('auto_publish', True).lte('date', latest_date).order('date').order('time').execute()
        return [post for post in response.data or [] if is_due(post, now)]

    async def process_due_posts(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Publish every due post once; returns counts per outcome"""
        now = now or datetime.now(timezone.utc)
        results = {"processed": 0, "published": 0, "failed": 0}

        due_posts = self.find_due_posts(now)
        if not due_posts:
            return results

        logger.info(f"Found {len(due_posts)} posts due for publishing")
        for post in due_posts:
            results["processed"] += 1
            if await self.process_single_post(post):
                results["published"] += 1
            else:
                results["failed"] += 1

        logger.info(f"Auto-publish sweep finished: {results}")
        return results

    async def process_single_post(self, post: Dict[str, Any]) -> bool:
        post_id, user_id = post['id'], post['user_id']
        try:
            _, result = await post_service.publish_post(self.db, user_id, post_id, self.publisher)
            return result.succeeded
        except (post_service.ConnectionNotFoundError, post_service.InvalidPostStateError) as e:
            logger.error(f"Auto-publish of post {post_id} failed: {str(e)}")
            post_service.mark_post_failed(self.db, user_id, post_id, str(e))
            return False
        except post_service.PostNotFoundError:
            logger.warning(f"Post {post_id} disappeared before it could be published")
            return False
        except Exception as e:
            logger.error(f"Unexpected error auto-publishing post {post_id}: {str(e)}")
            post_service.mark_post_failed(self.db, user_id, post_id, f"Publishing failed: {str(e)}")
            return False


async def run_auto_publish():
    """APScheduler job: one sweep with the shared admin client"""
    try:
        db = get_supabase_client(admin_access=True)
        await PostScheduler(db, get_platform_publisher()).process_due_posts()
    except Exception as e:
        # The next interval runs regardless
        logger.error(f"Error in auto-publish sweep: {str(e)}")
