"""
Contract ABI loading
"""

import json
from pathlib import Path
from typing import Any, Dict, List

from soy_operator.utils.logger import get_logger

logger = get_logger(__name__)

ABI_DIR = Path(__file__).parent.parent / "contracts" / "abi"

LOTTERY_CONTRACT = "SoyLottery"
RNG_CONTRACT = "RandomNumberGenerator"


def load_contract_abi(contract_name: str, abi_dir: Path = ABI_DIR) -> List[Dict[str, Any]]:
    """Load the ABI shipped with the package for `contract_name`"""
    abi_file = abi_dir / f"{contract_name}.json"
    if not abi_file.is_file():
        raise FileNotFoundError(f"ABI file not found: {abi_file}")

    with abi_file.open("r", encoding="utf-8") as handle:
        abi = json.load(handle)
    logger.debug(f"Loaded {contract_name} ABI with {len(abi)} items")
    return abi
