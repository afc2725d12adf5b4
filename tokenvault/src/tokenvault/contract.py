"""
Deployed vault contracts.

The covenant bytecode is compiled and deployed elsewhere; this module only
knows its redeem script and how to call one of its functions. A function call
is unlocked with:

    <arg N> ... <arg 1> [<function selector>] <redeem script>

The selector is only pushed when the contract has more than one function.
Signature arguments are given as a KeyIdentity and signed over the redeem
script when the unlocking bytecode is generated.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger
from vaultcore.models import UTXO
from vaultcore.script import p2sh_locking_bytecode, push_data, push_number
from vaultcore.transaction import Transaction
from vaultwallet.backends.base import ChainBackend
from vaultwallet.wallet.identity import KeyIdentity
from vaultwallet.wallet.unlocking import Unlocker

FunctionArg = int | bytes | KeyIdentity


class ContractFunctionUnlocker(Unlocker):
    """Unlocks a P2SH contract input by calling one of its functions."""

    def __init__(self, contract: VaultContract, function_name: str, args: Sequence[FunctionArg]):
        self.contract = contract
        self.function_name = function_name
        self.args = list(args)

    @property
    def script_code(self) -> bytes:
        return self.contract.redeem_script

    def _encode_arg(
        self, arg: FunctionArg, tx: Transaction, input_index: int, estimate: bool
    ) -> bytes:
        if isinstance(arg, KeyIdentity):
            return push_data(arg.sign(tx, input_index, self.script_code, estimate=estimate))
        if isinstance(arg, bool):
            raise TypeError("Boolean contract arguments are not supported")
        if isinstance(arg, int):
            return push_number(arg)
        if isinstance(arg, bytes):
            return push_data(arg)
        raise TypeError(f"Unsupported contract argument type: {type(arg).__name__}")

    def generate_unlocking_bytecode(
        self, tx: Transaction, input_index: int, estimate: bool = False
    ) -> bytes:
        script = b"".join(
            self._encode_arg(arg, tx, input_index, estimate) for arg in reversed(self.args)
        )
        if len(self.contract.functions) > 1:
            script += push_number(self.contract.functions.index(self.function_name))
        return script + push_data(self.contract.redeem_script)

    def __repr__(self) -> str:
        return f"ContractFunctionUnlocker({self.contract.name}.{self.function_name})"


class VaultContract:
    """
    A deployed P2SH covenant.

    Args:
        name: Label used in logs
        redeem_script: Compiled contract bytecode with constructor args applied
        backend: Chain backend used to observe the contract's UTXOs
        address: Contract address (encoded externally)
        token_address: Token-aware address for the same locking bytecode
        functions: Function names in selector order
        address_type: "p2sh20" or "p2sh32"
    """

    def __init__(
        self,
        name: str,
        redeem_script: bytes,
        backend: ChainBackend,
        address: str,
        token_address: str | None = None,
        functions: Sequence[str] = (),
        address_type: str = "p2sh32",
    ):
        if not redeem_script:
            raise ValueError(f"{name} contract has an empty redeem script")
        self.name = name
        self.redeem_script = redeem_script
        self.backend = backend
        self.address = address
        self.token_address = token_address or address
        self.functions = list(functions)
        self.address_type = address_type
        self.locking_bytecode = p2sh_locking_bytecode(redeem_script, address_type)

    async def get_utxos(self) -> list[UTXO]:
        utxos = await self.backend.get_utxos(self.address)
        logger.debug(f"{self.name} contract holds {len(utxos)} UTXOs")
        return utxos

    async def get_balance(self) -> int:
        return await self.backend.get_balance(self.address)

    def function(self, name: str, *args: FunctionArg) -> ContractFunctionUnlocker:
        if name not in self.functions:
            raise ValueError(f"{self.name} contract has no function {name!r}")
        return ContractFunctionUnlocker(self, name, args)

    def mint(
        self,
        sig: KeyIdentity,
        amount: int,
        lock_amount: int,
        height: int,
        reward: int,
    ) -> ContractFunctionUnlocker:
        return self.function("mint", sig, amount, lock_amount, height, reward)

    def release(self, sig: KeyIdentity, height: int) -> ContractFunctionUnlocker:
        return self.function("release", sig, height)

    def __repr__(self) -> str:
        return f"VaultContract(name={self.name!r}, address={self.address!r})"
