"""Analysis worker process: polls the shared job queue until signalled to stop."""

import asyncio

from card_analysis.config import settings
from card_analysis.db import close_db
from card_analysis.logging import setup_logging
from card_analysis.services import AnalysisWorker


async def main() -> None:
    setup_logging(settings.log_level)

    worker = AnalysisWorker()
    try:
        # Jobs held by this process go back to pending before exit
        await worker.run_forever()
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
