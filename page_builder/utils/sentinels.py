# utils/sentinels.py
from typing import Self, ClassVar, Optional
from pydantic_core import core_schema
from pydantic_core import PydanticCustomError
from pydantic.json_schema import JsonSchemaValue

class Missing:
	"""Marks an update field that was not supplied (as opposed to an explicit ``None``)."""
	_instance: ClassVar[Optional["Missing"]] = None

	def __new__(cls) -> Self:
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __repr__(self) -> str:
		return "MISSING"

	def __bool__(self) -> bool:
		return False

	@classmethod
	def __get_pydantic_core_schema__(cls, _source, _handler) -> core_schema.CoreSchema:
		# Only the singleton itself validates.
		def validate(v):
			if v is cls._instance:
				return v
			raise PydanticCustomError('missing_sentinel', 'value is not the Missing sentinel')
		return core_schema.no_info_plain_validator_function(
			validate,
			serialization=core_schema.plain_serializer_function_ser_schema(repr),
		)

	@classmethod
	def __get_pydantic_json_schema__(cls, _core_schema: core_schema.CoreSchema, _handler) -> JsonSchemaValue:
		return {
			"title": "Missing sentinel (internal)",
			"type": "string",
			"const": "MISSING",
			"description": "Internal placeholder meaning 'not provided'.",
			"readOnly": True,
			"writeOnly": True,
		}


MISSING = Missing()


def provided(value: object) -> bool:
	"""True when an update field carries a caller-supplied value (``None`` included)."""
	return value is not MISSING
