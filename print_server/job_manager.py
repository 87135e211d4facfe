"""
Job Manager
Runs batches of print jobs concurrently and reports per-job results in submission order
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Sequence, Union

from .errors import PrintServerError
from .models import JobResult, PrintJob


class JobManager:
    """Fans a batch out to the content resolver and print executor, then gathers the results"""

    def __init__(self, content_resolver, print_executor):
        self.content_resolver = content_resolver
        self.print_executor = print_executor
        self.logger = logging.getLogger(__name__)

        # Performance tracking
        self.batches_processed = 0
        self.jobs_succeeded = 0
        self.jobs_failed = 0

    async def run_batch(self, jobs: Sequence[Union[PrintJob, JobResult]]) -> List[JobResult]:
        """Process every job concurrently; result[i] always belongs to jobs[i].

        Entries that are already a JobResult (jobs rejected before they could
        be built) are passed through at their position.
        """
        if not jobs:
            return []

        start_time = time.time()
        self.logger.info(f"Printing {len(jobs)} jobs")

        results = await asyncio.gather(
            *(self._run_entry(entry) for entry in jobs),
            return_exceptions=True
        )

        job_results = []
        for entry, result in zip(jobs, results):
            if isinstance(result, BaseException):
                target = getattr(entry, 'printer', '?')
                self.logger.error(f"Job for {target} failed with exception: {result}")
                result = JobResult(success=False, error=str(result) or type(result).__name__)
            job_results.append(result)

        self.batches_processed += 1
        successful = sum(1 for r in job_results if r.success)
        total_time = time.time() - start_time
        self.logger.info(
            f"Batch completed: {successful}/{len(jobs)} successful in {total_time*1000:.0f}ms"
        )
        return job_results

    async def _run_entry(self, entry: Union[PrintJob, JobResult]) -> JobResult:
        if isinstance(entry, JobResult):
            if not entry.success:
                self.jobs_failed += 1
            return entry
        return await self.process_job(entry)

    async def process_job(self, job: PrintJob) -> JobResult:
        """Resolve and print one job, capturing any failure into its result"""
        start_time = time.time()
        source = "inline content" if job.inline_content else job.url

        try:
            data = await self.content_resolver.resolve(job)
            output = await self.print_executor.execute(data, job.printer, job.settings)
        except PrintServerError as e:
            self.jobs_failed += 1
            self.logger.error(f"Print of {source} to {job.printer} failed: {e}")
            return JobResult(success=False, error=str(e))
        except Exception as e:
            self.jobs_failed += 1
            self.logger.exception(f"Unexpected error printing {source} to {job.printer}")
            return JobResult(success=False, error=str(e) or type(e).__name__)

        self.jobs_succeeded += 1
        processing_time = (time.time() - start_time) * 1000
        self.logger.info(f"Printed {source} to {job.printer} in {processing_time:.0f}ms")
        if output.strip():
            self.logger.debug(f"Print command output: {output.strip()}")
        return JobResult(success=True)

    def get_status(self) -> Dict[str, Any]:
        return {
            "batches_processed": self.batches_processed,
            "jobs_succeeded": self.jobs_succeeded,
            "jobs_failed": self.jobs_failed,
        }
