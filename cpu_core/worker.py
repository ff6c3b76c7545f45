import multiprocessing as mp
import time
import logging
import queue
import traceback

from core.address import derive_create2_address_from_hash
from core.hook_miner import search_salt_range
from core.mining_utils import salt_from_index


class CPUWorker(mp.Process):
    """Scans disjoint salt ranges handed out by ParallelHookMiner."""

    def __init__(self, worker_id, request_queue, response_queue, generation):
        super().__init__(daemon=True)
        self.worker_id = worker_id
        self.request_queue = request_queue
        self.response_queue = response_queue
        # Shared search generation; requests tagged with an older one are stale
        self.generation = generation
        self.shutdown_event = mp.Event()
        self.logger = logging.getLogger(f'cpu_worker_{worker_id}')

    def run(self):
        # Setup logging in this process
        logging.basicConfig(
            level=logging.INFO,
            format=f'%(asctime)s - CPU-{self.worker_id} - %(levelname)s - %(message)s'
        )
        self.logger = logging.getLogger(f'cpu_worker_{self.worker_id}')
        self.logger.debug(f"CPU Worker {self.worker_id} started")

        try:
            self._main_loop()
        except Exception as e:
            self.logger.critical(f"CPU Worker crashed: {e}")
            traceback.print_exc()
        finally:
            self.logger.debug("CPU Worker shutting down")

    def _main_loop(self):
        while not self.shutdown_event.is_set():
            try:
                req = self.request_queue.get(timeout=1.0)
            except queue.Empty:
                continue

            if req.get('type') == 'shutdown':
                self.logger.debug("Shutdown request received")
                self.shutdown_event.set()
                break

            if req.get('type') == 'mine':
                self._handle_mine(req)

    def _handle_mine(self, req):
        if req.get('generation') != self.generation.value:
            self.logger.debug(f"Skipping stale range starting at {req['start']}")
            return
        self._execute_mine(req)

    def _execute_mine(self, req):
        start_time = time.time()
        try:
            deployer = req['deployer']
            bytecode_hash = req['bytecode_hash']
            start = req['start']
            stop = start + req['count']

            hit = search_salt_range(deployer, bytecode_hash, req['flags'], start, stop)

            if hit is not None:
                index, address = hit
                self.response_queue.put({
                    'request_id': req['id'],
                    'worker_id': self.worker_id,
                    'start': start,
                    'found': True,
                    'index': index,
                    'address': address,
                    'hashes': index - start + 1,
                    'duration': time.time() - start_time
                })
                return

            # Last candidate of the range, for progress display
            last_address = derive_create2_address_from_hash(deployer, salt_from_index(stop - 1), bytecode_hash)
            self.response_queue.put({
                'request_id': req['id'],
                'worker_id': self.worker_id,
                'start': start,
                'found': False,
                'index': None,
                'address': last_address,
                'hashes': req['count'],
                'duration': time.time() - start_time
            })

        except Exception as e:
            self.logger.error(f"Mining error on CPU {self.worker_id}: {e}")
            traceback.print_exc()
            self.response_queue.put({
                'request_id': req['id'],
                'worker_id': self.worker_id,
                'error': str(e)
            })
