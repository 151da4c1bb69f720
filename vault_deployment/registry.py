import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from eth_typing import ChecksumAddress

from vault_deployment.constants import ORPHANS_SUFFIX, STANDARD_REGISTRY_JSON_FORMAT
from vault_deployment.exceptions import AlreadyRecorded, RegistryWriteError
from vault_deployment.utils import _load_json

ChainId = int
UnitName = str


class DeploymentRecord(NamedTuple):
    """Represents the persisted result of deploying a single unit."""

    chain_id: ChainId
    name: UnitName
    contract: str
    address: ChecksumAddress
    constructor_args: Dict[str, Any]
    fingerprint: str
    deployer: ChecksumAddress
    implementation: Optional[ChecksumAddress] = None
    initializer: Optional[Dict[str, Any]] = None

    @property
    def is_proxy(self) -> bool:
        return self.implementation is not None

    @property
    def published_addresses(self) -> List[ChecksumAddress]:
        """Addresses with source to publish; a proxy and its implementation."""
        if self.is_proxy:
            return [self.implementation, self.address]
        return [self.address]


def _entry_from_record(record: DeploymentRecord) -> Dict[str, Any]:
    entry = record._asdict()
    del entry["chain_id"], entry["name"]
    entry["constructor_args"] = dict(record.constructor_args)
    return entry


def _record_from_entry(chain_id: ChainId, name: UnitName, entry: Dict) -> DeploymentRecord:
    return DeploymentRecord(
        chain_id=int(chain_id),
        name=name,
        contract=entry["contract"],
        address=entry["address"],
        constructor_args=OrderedDict(entry.get("constructor_args") or {}),
        fingerprint=entry["fingerprint"],
        deployer=entry["deployer"],
        implementation=entry.get("implementation"),
        initializer=entry.get("initializer"),
    )


def read_registry(filepath: Path) -> List[DeploymentRecord]:
    """Returns every record in a registry file, across all chains."""
    if not filepath.exists():
        return list()
    records = list()
    for chain_id, entries in _load_json(filepath).items():
        for name, entry in entries.items():
            records.append(_record_from_entry(chain_id, name, entry))
    return records


def _write_atomically(data: Dict, filepath: Path) -> None:
    """Writes JSON next to the target and moves it into place in one step."""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    temp_filepath = filepath.with_suffix(".temp.json")
    with open(temp_filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)
    temp_filepath.replace(filepath)


def _sorted(data: Dict) -> Dict:
    # stable ordering keeps registry diffs reviewable
    return {
        chain_id: dict(sorted(entries.items()))
        for chain_id, entries in sorted(data.items(), key=lambda item: int(item[0]))
    }


class Registry:
    """
    Durable, write-once ledger of deployments for a single chain.

    Backed by a JSON file shaped as {chain_id: {unit_name: entry}} so that
    one file can track several chains. A name, once recorded, is never
    replaced.
    """

    def __init__(self, filepath: Path, chain_id: ChainId):
        self.filepath = Path(filepath)
        self.chain_id = int(chain_id)

    @property
    def orphans_filepath(self) -> Path:
        return self.filepath.with_suffix(ORPHANS_SUFFIX)

    def _read(self) -> Dict:
        if not self.filepath.exists():
            return dict()
        return _load_json(self.filepath)

    def lookup(self, name: UnitName) -> Optional[DeploymentRecord]:
        entry = self._read().get(str(self.chain_id), {}).get(name)
        if entry is None:
            return None
        return _record_from_entry(self.chain_id, name, entry)

    def address_of(self, name: UnitName) -> Optional[ChecksumAddress]:
        record = self.lookup(name)
        return record.address if record else None

    def records(self) -> List[DeploymentRecord]:
        entries = self._read().get(str(self.chain_id), {})
        return [_record_from_entry(self.chain_id, name, entry) for name, entry in entries.items()]

    def record(self, name: UnitName, record: DeploymentRecord) -> None:
        if record.name != name or record.chain_id != self.chain_id:
            raise ValueError(
                f"Record for {record.name} on chain {record.chain_id} cannot be stored "
                f"as {name} on chain {self.chain_id}."
            )

        data = self._read()
        entries = data.setdefault(str(self.chain_id), dict())
        if name in entries:
            raise AlreadyRecorded(name)
        entries[name] = _entry_from_record(record)

        try:
            _write_atomically(_sorted(data), self.filepath)
        except (OSError, TypeError, ValueError) as e:
            raise RegistryWriteError(record, reason=str(e)) from e
        print(f"(i) Recorded {name} at {record.address} in {self.filepath}")

    def note_orphan(
        self,
        name: UnitName,
        proxy_address: ChecksumAddress,
        implementation: Optional[ChecksumAddress] = None,
    ) -> None:
        """
        Notes a proxy that was deployed but never initialized. Orphans are for
        operator follow-up only and never count as a deployment.
        """
        data = dict()
        if self.orphans_filepath.exists():
            data = _load_json(self.orphans_filepath)
        data.setdefault(str(self.chain_id), list()).append(
            {"name": name, "address": proxy_address, "implementation": implementation}
        )
        _write_atomically(data, self.orphans_filepath)
        print(f"WARNING: {name} proxy at {proxy_address} was left uninitialized.")

    def orphans(self) -> List[Dict[str, Any]]:
        if not self.orphans_filepath.exists():
            return list()
        return _load_json(self.orphans_filepath).get(str(self.chain_id), list())
