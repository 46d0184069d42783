"""
Quick check that the Supabase project is reachable and the profiles table is readable

Run: python scripts/check_backend.py [access_token]
"""

import asyncio
import sys
from pathlib import Path
import os
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

if not SUPABASE_URL or not SUPABASE_ANON_KEY:
    raise ValueError("❌ SUPABASE_URL and SUPABASE_ANON_KEY must be set in .env file")


async def check_backend(access_token=None):
    """Resolve the session and read the caller's profile row"""
    from velgo.services.backend_client import SupabaseBackend

    print("=" * 60)
    print("  Supabase Backend Check")
    print("=" * 60 + "\n")

    backend = SupabaseBackend(access_token, base_url=SUPABASE_URL, api_key=SUPABASE_ANON_KEY)
    try:
        logger.info("🔌 Resolving session...")
        session = await backend.get_session()

        if session is None:
            logger.info("ℹ️ No session (pass an access token to test profile access)\n")
            return

        logger.info(f"✅ Signed in as {session.email} ({session.user_id})\n")

        logger.info("🧪 Fetching profile row...")
        profile = await backend.fetch_profile(session.user_id)
        if profile is None:
            logger.info("⚠️ No profile row yet (signup trigger missing?)")
        else:
            logger.info(f"📄 Profile: role={profile.role}, tier={profile.subscription_tier}, complete={profile.is_complete}")

        logger.info("✅ Backend reachable!")

    except Exception as e:
        logger.error(f"❌ Check failed: {e}")
        raise
    finally:
        await backend.close()

    print("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(check_backend(sys.argv[1] if len(sys.argv) > 1 else None))
