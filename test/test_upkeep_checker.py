#!/usr/bin/env python3
"""Unit tests for the UpkeepChecker module."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import ContractLogicError

from conftest import DisconnectedChain, FakeChain, block
from limit_keeper.errors import QueryError
from limit_keeper.upkeep_checker import UpkeepChecker


@pytest.fixture
def mock_contract():
    """Create a mock contract whose checkUpkeep call can be scripted."""
    contract = MagicMock()
    contract.functions.checkUpkeep.return_value.call = AsyncMock()
    return contract


@pytest.fixture
def mock_contract_util(mock_contract):
    util = MagicMock()
    util.bind.return_value = mock_contract
    return util


class TestUpkeepChecker:
    """Test suite for UpkeepChecker class."""

    @pytest.mark.asyncio
    async def test_eligible_order(self, mock_contract_util, mock_contract):
        mock_contract.functions.checkUpkeep.return_value.call.return_value = [True, b"\x0a\xbc"]
        chain = FakeChain()
        checker = UpkeepChecker(chain, mock_contract_util)

        candidate = await checker.check(block(100))

        assert candidate.should_execute is True
        assert candidate.order_id == b"\x0a\xbc"
        assert candidate.perform_data == b"\x0a\xbc"
        assert candidate.order_key == "0x0abc"
        mock_contract_util.bind.assert_called_once_with(chain.w3)
        mock_contract.functions.checkUpkeep.assert_called_once_with(b"0x")

    @pytest.mark.asyncio
    async def test_not_eligible(self, mock_contract_util, mock_contract):
        mock_contract.functions.checkUpkeep.return_value.call.return_value = (False, b"")

        candidate = await UpkeepChecker(FakeChain(), mock_contract_util).check(block(1))

        assert candidate.should_execute is False
        assert candidate.order_id == b""

    @pytest.mark.asyncio
    async def test_custom_check_data(self, mock_contract_util, mock_contract):
        mock_contract.functions.checkUpkeep.return_value.call.return_value = (False, b"")

        await UpkeepChecker(FakeChain(), mock_contract_util, check_data=b"").check(block(1))

        mock_contract.functions.checkUpkeep.assert_called_once_with(b"")

    @pytest.mark.asyncio
    async def test_rpc_failure_raises_query_error(self, mock_contract_util, mock_contract):
        mock_contract.functions.checkUpkeep.return_value.call.side_effect = TimeoutError("timed out")

        with pytest.raises(QueryError, match="block 50") as exc_info:
            await UpkeepChecker(FakeChain(), mock_contract_util).check(block(50))

        assert exc_info.value.context == {"block": 50}

    @pytest.mark.asyncio
    async def test_revert_raises_query_error(self, mock_contract_util, mock_contract):
        mock_contract.functions.checkUpkeep.return_value.call.side_effect = ContractLogicError("execution reverted")

        with pytest.raises(QueryError):
            await UpkeepChecker(FakeChain(), mock_contract_util).check(block(1))

    @pytest.mark.asyncio
    async def test_unexpected_result_shape(self, mock_contract_util, mock_contract):
        mock_contract.functions.checkUpkeep.return_value.call.return_value = "garbage"

        with pytest.raises(QueryError, match="Unexpected"):
            await UpkeepChecker(FakeChain(), mock_contract_util).check(block(1))

    @pytest.mark.asyncio
    async def test_no_connection(self, mock_contract_util):
        with pytest.raises(QueryError, match="not connected"):
            await UpkeepChecker(DisconnectedChain(), mock_contract_util).check(block(1))
