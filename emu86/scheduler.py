"""Cooperative execution loop driving a whole program through the CPU.

A run processes the program in fixed-size batches. After every executed
instruction the state hook receives a snapshot; after every batch the
progress hook receives ``(lines_completed, total_lines)`` and the run yields
to the event loop. Stop requests are honored only at those batch boundaries.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from emu86.cpu import CPU
from emu86.errors import EmulatorBusy, InstructionError
from emu86.loader import load_program
from emu86.machine_state import MachineState

logger = logging.getLogger('EMU86')


class RunState(Enum):
    IDLE = 'IDLE'
    RUNNING = 'RUNNING'
    STOPPING = 'STOPPING'
    HALTED_OK = 'HALTED_OK'
    HALTED_ERROR = 'HALTED_ERROR'


class RunStatus(Enum):
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    FAILED = 'FAILED'


@dataclass
class ExecutionError:
    line_number: int
    message: str
    kind: str


@dataclass
class RunResult:
    status: RunStatus
    instructions_executed: int
    lines_processed: int
    total_lines: int
    error: ExecutionError = None
    labels: dict = field(default_factory=dict)


class ExecutionScheduler:
    """Runs programs against a MachineState, one run at a time.

    Usage:
        scheduler = ExecutionScheduler(on_progress=print)
        result = scheduler.run_sync("mov ax, 7\\nmul ax")
        print(scheduler.state.get_register('ax'))  # 49
    """

    BATCH_SIZE = 100

    def __init__(self, state=None, batch_size=BATCH_SIZE,
                 on_state=None, on_progress=None, on_error=None):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.state = state if state is not None else MachineState()
        self.cpu = CPU(self.state)
        self.batch_size = batch_size

        # Host hooks
        self.on_state = on_state
        self.on_progress = on_progress
        self.on_error = on_error

        self.run_state = RunState.IDLE
        self.instructions_executed = 0
        self.lines_processed = 0
        self.total_lines = 0
        self.last_result = None

    @property
    def running(self):
        return self.run_state in (RunState.RUNNING, RunState.STOPPING)

    def stop(self):
        """Request cooperative cancellation of the current run"""
        if self.run_state is RunState.RUNNING:
            logger.info("Stop requested")
            self.run_state = RunState.STOPPING

    def reset(self):
        """Restore registers, flags and memory. Not allowed during a run."""
        if self.running:
            raise EmulatorBusy("cannot reset while a program is running")
        self.state.reset()
        self.run_state = RunState.IDLE
        self.instructions_executed = 0
        self.lines_processed = 0
        self.total_lines = 0
        self._publish_state()

    def run_sync(self, text):
        """Run a program to completion from synchronous code"""
        return asyncio.run(self.run(text))

    async def run(self, text):
        """Run a whole program. Returns a RunResult, or None if a run is in progress."""
        if self.running:
            logger.warning("Run rejected: a program is already running")
            return None

        self.run_state = RunState.RUNNING
        try:
            result = await self._run(text)
        finally:
            # A hook raised: leave the scheduler usable
            if self.running:
                self.run_state = RunState.IDLE

        self.last_result = result
        return result

    async def _run(self, text):
        self.state.reset()
        self._publish_state()
        program = load_program(text)
        self.instructions_executed = 0
        self.lines_processed = 0
        self.total_lines = len(program)
        logger.info(f"Run started: {self.total_lines} lines, {len(program.labels)} labels")

        while self.lines_processed < self.total_lines and self.run_state is RunState.RUNNING:
            end = min(self.lines_processed + self.batch_size, self.total_lines)

            for index in range(self.lines_processed, end):
                try:
                    instruction = self.cpu.execute_line(program.lines[index])
                except InstructionError as e:
                    self.lines_processed = index
                    return self._fail(index + 1, e, program)

                if instruction is None:
                    continue
                self.instructions_executed += 1
                self._publish_state()

            self.lines_processed = end
            if self.on_progress is not None:
                self.on_progress(self.lines_processed, self.total_lines)

            # Sole suspension point
            await asyncio.sleep(0)

        if self.run_state is RunState.STOPPING:
            self.run_state = RunState.IDLE
            logger.info(f"Run cancelled after {self.instructions_executed} instructions")
            return self._result(RunStatus.CANCELLED, program)

        self.run_state = RunState.HALTED_OK
        logger.info(f"Run completed: {self.instructions_executed} instructions executed")
        logger.debug(f"Final registers:\n{self.state.dump_registers()}")
        return self._result(RunStatus.COMPLETED, program)

    def _fail(self, line_number, exc, program):
        error = ExecutionError(line_number, str(exc), type(exc).__name__)
        self.run_state = RunState.HALTED_ERROR
        logger.error(f"Line {line_number}: {error.message}")
        logger.debug(f"Registers at failure:\n{self.state.dump_registers()}")
        sp = self.state.get_register('sp')
        logger.debug(f"Stack at failure:\n{self.state.memory.dump(sp, 32)}")

        # The failing handler may already have mutated state
        self._publish_state()
        if self.on_error is not None:
            self.on_error(line_number, error.message)
        return self._result(RunStatus.FAILED, program, error)

    def _publish_state(self):
        if self.on_state is not None:
            self.on_state(self.state.snapshot())

    def _result(self, status, program, error=None):
        return RunResult(
            status=status,
            instructions_executed=self.instructions_executed,
            lines_processed=self.lines_processed,
            total_lines=self.total_lines,
            error=error,
            labels=dict(program.labels),
        )
