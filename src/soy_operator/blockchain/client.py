"""Blockchain client for the lottery operator."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from eth_account import Account
from web3 import Web3
from web3.contract import Contract

from soy_operator.blockchain.contracts import LOTTERY_CONTRACT, RNG_CONTRACT, load_contract_abi
from soy_operator.lottery.errors import ConfigError, TransactionFailedError
from soy_operator.lottery.models import LotteryRound, LotteryStatus, TransactionReceipt
from soy_operator.utils.logger import get_logger

logger = get_logger(__name__)


class BlockchainClient:
    """Async-friendly wrapper around web3.py for the lottery and RNG contracts."""

    def __init__(self, config: Dict[str, Any]):
        self._config = config

        blockchain_cfg = config.get("blockchain", {})
        self.rpc_url: str = blockchain_cfg.get("rpc_url", "https://testnet-rpc.callisto.network")
        # per-RPC timeout (seconds) passed to HTTPProvider
        try:
            self.rpc_timeout: float = float(blockchain_cfg.get("rpc_timeout", 10.0))
        except (TypeError, ValueError):
            self.rpc_timeout = 10.0
        self.chain_id: int = int(blockchain_cfg.get("chain_id", 20729))
        self.contract_addresses: Dict[str, Optional[str]] = {
            LOTTERY_CONTRACT: blockchain_cfg.get("lottery_address"),
            RNG_CONTRACT: blockchain_cfg.get("rng_address"),
        }

        self._w3: Optional[Web3] = None
        self._contracts: Dict[str, Contract] = {}

        private_key = blockchain_cfg.get("operator_private_key")
        self.account = Account.from_key(private_key) if private_key else None
        if self.account:
            logger.info("Operator account loaded: %s", self.account.address)

        gas_price_setting = blockchain_cfg.get("gas_price")
        self._gas_price_override: Optional[int] = None
        if gas_price_setting:
            try:
                self._gas_price_override = Web3.to_wei(Decimal(str(gas_price_setting)), "gwei")
            except (ArithmeticError, ValueError) as exc:
                raise ConfigError(f"Unable to parse gas price '{gas_price_setting}': {exc}") from exc

        self._gas_multiplier = float(blockchain_cfg.get("gas_multiplier", 1.0))
        self._gas_padding = int(blockchain_cfg.get("gas_padding", 20000))
        self.tx_timeout = int(blockchain_cfg.get("tx_timeout", 180))

    @property
    def operator_address(self) -> str:
        if not self.account:
            raise ConfigError("Operator account not configured")
        return self.account.address

    async def initialize(self) -> None:
        """Establish the RPC connection and bind both contracts."""
        self._w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": self.rpc_timeout}))
        connected = await asyncio.to_thread(self._w3.is_connected)
        if not connected:  # pragma: no cover - depends on live RPC
            raise ConnectionError(f"Failed to connect to RPC at {self.rpc_url}")

        logger.info("Connected to RPC %s (chain id %s)", self.rpc_url, self.chain_id)

        actual_chain_id = await asyncio.to_thread(lambda: self._w3.eth.chain_id)
        if actual_chain_id != self.chain_id:
            logger.warning(f"Chain ID mismatch: expected {self.chain_id}, got {actual_chain_id}")

        for name, address in self.contract_addresses.items():
            if not address:
                raise ConfigError(f"No address configured for {name}")
            abi = load_contract_abi(name)
            self._contracts[name] = self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
            logger.info("%s bound at %s", name, address)

    async def close(self) -> None:
        """Tear down references; HTTP provider closes automatically."""
        self._contracts = {}
        self._w3 = None

    def _ensure_contract(self, name: str) -> Contract:
        contract = self._contracts.get(name)
        if contract is None:
            raise RuntimeError(f"Contract {name} not initialised")
        return contract

    def _ensure_web3(self) -> Web3:
        if not self._w3:
            raise RuntimeError("Web3 provider not initialised")
        return self._w3

    async def _call_view(self, contract_name: str, function_name: str, *args) -> Any:
        contract = self._ensure_contract(contract_name)

        def _call():
            return getattr(contract.functions, function_name)(*args).call()

        return await asyncio.to_thread(_call)

    def _gas_limit(self, estimate: int) -> int:
        return int(estimate * self._gas_multiplier) + self._gas_padding

    async def _send_transaction(self, contract_name: str, function_name: str, *args, value: int = 0) -> str:
        if not self.account:
            raise ConfigError("Operator account not configured")

        contract = self._ensure_contract(contract_name)
        w3 = self._ensure_web3()

        def _send() -> str:
            tx_function = getattr(contract.functions, function_name)(*args)
            gas_estimate = tx_function.estimate_gas({"from": self.account.address, "value": value})
            gas_price = self._gas_price_override or w3.eth.gas_price
            txn = tx_function.build_transaction(
                {
                    "from": self.account.address,
                    "value": value,
                    "gas": self._gas_limit(gas_estimate),
                    "gasPrice": gas_price,
                    "nonce": w3.eth.get_transaction_count(self.account.address, "pending"),
                    "chainId": self.chain_id,
                }
            )
            signed = self.account.sign_transaction(txn)
            # eth-account renamed rawTransaction to raw_transaction in 0.13
            raw = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction")
            tx_hash = w3.eth.send_raw_transaction(raw)
            return Web3.to_hex(tx_hash)

        tx_hash = await asyncio.to_thread(_send)
        logger.info("Sent transaction %s for %s.%s", tx_hash, contract_name, function_name)
        return tx_hash

    async def wait_for_transaction(self, tx_hash: str, timeout: Optional[int] = None) -> TransactionReceipt:
        w3 = self._ensure_web3()
        timeout = timeout or self.tx_timeout

        def _wait() -> TransactionReceipt:
            receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
            return TransactionReceipt(
                tx_hash=Web3.to_hex(receipt["transactionHash"]),
                block_number=int(receipt["blockNumber"]),
                gas_used=int(receipt["gasUsed"]),
                status=int(receipt["status"]),
            )

        return await asyncio.to_thread(_wait)

    async def transact(self, contract_name: str, function_name: str, *args) -> TransactionReceipt:
        """Send a transaction and wait until it is mined successfully."""
        tx_hash = await self._send_transaction(contract_name, function_name, *args)
        receipt = await self.wait_for_transaction(tx_hash)
        if not receipt.succeeded:
            raise TransactionFailedError(function_name, tx_hash, receipt.block_number)
        logger.info(
            "%s mined in block %s (gas used %s)", function_name, receipt.block_number, receipt.gas_used
        )
        return receipt

    # ------------------------------------------------------------------
    # Lottery contract
    # ------------------------------------------------------------------
    async def get_current_lottery_id(self) -> int:
        return int(await self._call_view(LOTTERY_CONTRACT, "viewCurrentLotteryId"))

    async def get_lottery(self, lottery_id: int) -> LotteryRound:
        raw = await self._call_view(LOTTERY_CONTRACT, "viewLottery", lottery_id)
        logger.debug("Lottery %s raw data: %s", lottery_id, raw)
        return LotteryRound(
            lottery_id=lottery_id,
            status=LotteryStatus(int(self._select(raw, "status", 0))),
            start_time=int(self._select(raw, "startTime", 1)),
            end_time=int(self._select(raw, "endTime", 2)),
            price_ticket=int(self._select(raw, "priceTicketInSoy", 3)),
            discount_divisor=int(self._select(raw, "discountDivisor", 4)),
            rewards_breakdown=tuple(int(v) for v in self._select(raw, "rewardsBreakdown", 5)),
            treasury_fee=int(self._select(raw, "treasuryFee", 6)),
            amount_collected=int(self._select(raw, "amountCollectedInSoy", 11)),
            final_number=int(self._select(raw, "finalNumber", 12)),
        )

    async def close_lottery(self, lottery_id: int) -> TransactionReceipt:
        return await self.transact(LOTTERY_CONTRACT, "closeLottery", lottery_id)

    async def draw_final_number(self, lottery_id: int, auto_injection: bool) -> TransactionReceipt:
        return await self.transact(
            LOTTERY_CONTRACT, "drawFinalNumberAndMakeLotteryClaimable", lottery_id, bool(auto_injection)
        )

    async def start_lottery(
        self,
        end_time: int,
        price_ticket: int,
        discount_divisor: int,
        rewards_breakdown: Sequence[int],
        treasury_fee: int,
    ) -> TransactionReceipt:
        return await self.transact(
            LOTTERY_CONTRACT,
            "startLottery",
            end_time,
            price_ticket,
            discount_divisor,
            list(rewards_breakdown),
            treasury_fee,
        )

    # ------------------------------------------------------------------
    # Random number generator contract
    # ------------------------------------------------------------------
    async def commit_secret(self, secret_hash: bytes) -> TransactionReceipt:
        return await self.transact(RNG_CONTRACT, "commitSecret", secret_hash)

    async def reveal_secret(self, lottery_id: int, secret: int) -> TransactionReceipt:
        return await self.transact(RNG_CONTRACT, "revealSecret", lottery_id, secret)

    # ------------------------------------------------------------------
    # Chain state
    # ------------------------------------------------------------------
    async def get_block_number(self) -> int:
        w3 = self._ensure_web3()
        return int(await asyncio.to_thread(lambda: w3.eth.block_number))

    async def get_balance(self, address: str) -> Decimal:
        """Balance of `address` in whole native coins."""
        w3 = self._ensure_web3()
        wei = await asyncio.to_thread(w3.eth.get_balance, address)
        return Decimal(Web3.from_wei(wei, "ether"))

    @staticmethod
    def _select(mapping_or_tuple: Any, key: str, index: int) -> Any:
        if isinstance(mapping_or_tuple, dict):
            if key in mapping_or_tuple:
                return mapping_or_tuple[key]
        return mapping_or_tuple[index]
