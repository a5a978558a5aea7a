import logging
from dataclasses import dataclass, field

from emu86.decoder import is_label, strip_comment

logger = logging.getLogger('EMU86')


@dataclass
class Program:
    lines: list
    labels: dict = field(default_factory=dict)

    def __len__(self):
        return len(self.lines)


def build_label_map(lines):
    """Map each lowercased label name to the index of the line defining it"""
    labels = {}
    for index, line in enumerate(lines):
        text = strip_comment(line)
        if not is_label(text):
            continue
        name = text[:-1].strip().lower()
        if name in labels:
            logger.warning(f"Label {name} redefined on line {index + 1}")
        labels[name] = index
        logger.info(f"Found label: {name} at line {index + 1}")

    logger.debug(f"Label table: {labels}")
    return labels


def load_program(text):
    lines = text.splitlines()
    return Program(lines, build_label_map(lines))
