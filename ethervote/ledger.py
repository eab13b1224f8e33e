"""
Transaction reference providers.

A vote is stamped with a transaction reference before it is recorded. The
mock signer returns a random hex string (after an optional delay that mimics
waiting for a wallet confirmation); the Fabric signer invokes chaincode via
the `peer` CLI and returns the transaction id it reports.
"""
import json
import logging
import re
import secrets
import subprocess
import time
from abc import ABC, abstractmethod
from typing import List

from .config import LEDGER_BACKENDS, Settings
from .errors import ConfigurationError, ExternalServiceUnavailableError

logger = logging.getLogger(__name__)

TX_ID_PATTERN = re.compile(r"Transaction ID:\s*([a-f0-9]+)", re.I)


class TransactionSigner(ABC):
    name = "abstract"

    @abstractmethod
    def sign_vote(self, voter_id: str, candidate_id: str) -> str:
        """Return an opaque transaction reference for this vote."""


class MockTransactionSigner(TransactionSigner):
    name = "mock"

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds

    def sign_vote(self, voter_id: str, candidate_id: str) -> str:
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)
        return "0x" + secrets.token_hex(16)


def vote_key(voter_id: str, candidate_id: str) -> str:
    # {{{VOTER|||CANDIDATE}}} keeps the pair recoverable from raw block data
    return f"{{{{{{{voter_id}|||{candidate_id}}}}}}}"


def extract_transaction_id(output: str) -> str:
    match = TX_ID_PATTERN.search(output)
    if not match:
        raise ValueError("Transaction ID not found in blockchain response")
    return match.group(1)


class FabricTransactionSigner(TransactionSigner):
    """Hyperledger Fabric via `peer chaincode invoke`. ORDERER_CA and
    PEER0_ORG1_CA must point at the TLS certificates in the environment."""

    name = "fabric"

    def __init__(self, channel: str, chaincode: str, orderer: str, peer: str, timeout: float = 30.0):
        self.channel = channel
        self.chaincode = chaincode
        self.orderer = orderer
        self.peer = peer
        self.timeout = timeout

    def build_command(self, voter_id: str, candidate_id: str) -> List[str]:
        args = json.dumps({"Args": ["AddEvidence", vote_key(voter_id, candidate_id)]})
        return [
            "peer", "chaincode", "invoke",
            "-o", self.orderer,
            "--tls", "true", "--cafile", "$ORDERER_CA",
            "-C", self.channel, "-n", self.chaincode,
            "--peerAddresses", self.peer,
            "--tlsRootCertFiles", "$PEER0_ORG1_CA",
            "-c", args,
        ]

    def sign_vote(self, voter_id: str, candidate_id: str) -> str:
        cmd = self.build_command(voter_id, candidate_id)
        try:
            result = subprocess.run(
                " ".join(_quote(part) for part in cmd),
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Blockchain invoke failed: {e}")
            raise ExternalServiceUnavailableError("Fabric ledger", str(e))

        # peer prints the result on stderr
        output = (result.stdout or result.stderr or "").strip()
        logger.debug(f"Blockchain invoke output: {output}")
        try:
            txn_id = extract_transaction_id(output)
        except ValueError as e:
            logger.error(f"Blockchain invoke returned no transaction id (exit {result.returncode})")
            raise ExternalServiceUnavailableError("Fabric ledger", str(e))
        logger.info(f"Extracted Transaction ID: {txn_id}")
        return txn_id


def _quote(part: str) -> str:
    # leave $VARS for the shell to expand, quote everything else
    if part.startswith("$"):
        return f'"{part}"'
    return "'" + part.replace("'", "'\\''") + "'"


def build_signer(settings: Settings) -> TransactionSigner:
    if settings.ledger_backend == "mock":
        return MockTransactionSigner(delay_seconds=settings.ledger_delay_seconds)
    if settings.ledger_backend == "fabric":
        return FabricTransactionSigner(
            channel=settings.fabric_channel,
            chaincode=settings.fabric_chaincode,
            orderer=settings.fabric_orderer,
            peer=settings.fabric_peer,
        )
    raise ConfigurationError(
        f"Unknown ledger backend '{settings.ledger_backend}' (expected one of: {', '.join(LEDGER_BACKENDS)})",
        config_key="LEDGER_BACKEND",
    )
