import logging
from boto3 import resource
from pydantic import BaseModel, Field, model_validator
from datetime import date
from typing import Optional

from reservations.bootstrap import build_services
from reservations.utils.config import load_settings
from reservations.utils.custom_response import as_data, send_custom_response
from reservations.utils.error_mapping import error_response
from reservations.utils.request_context import query_params

logger = logging.getLogger()
logger.setLevel(logging.INFO)

settings = load_settings()
dynamodb = resource("dynamodb", region_name=settings.region)
table = dynamodb.Table(settings.table_name)

services = build_services(table, settings)
availability_service = services.availability_service


class AvailabilityQuery(BaseModel):
    hotel_id: str = Field(min_length=1)
    room_type_id: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    num_adults: Optional[int] = Field(default=None, ge=1)
    num_children: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_range(self):
        if self.start_date or self.end_date:
            if not (self.start_date and self.end_date and self.room_type_id):
                raise ValueError(
                    "room_type_id, start_date and end_date are required for a calendar"
                )
        elif not (self.check_in and self.check_out):
            raise ValueError("check_in and check_out are required")
        return self


def get_availability(event, context):
    """Calendar, single room type, or search across room types, by query shape."""
    try:
        query = AvailabilityQuery.model_validate(query_params(event))

        if query.start_date:
            calendar = availability_service.get_availability_calendar(
                query.hotel_id, query.room_type_id, query.start_date, query.end_date
            )
            return send_custom_response(
                200, "Availability calendar fetched successfully", as_data(calendar)
            )

        if query.room_type_id:
            result = availability_service.check_availability(
                query.hotel_id, query.room_type_id, query.check_in, query.check_out
            )
            data = as_data(result)
            data["minimum_available"] = availability_service.get_minimum_availability(
                query.hotel_id, query.room_type_id, query.check_in, query.check_out
            )
            return send_custom_response(200, "Availability fetched successfully", data)

        room_types = availability_service.get_available_room_types(
            query.hotel_id,
            query.check_in,
            query.check_out,
            num_adults=query.num_adults,
            num_children=query.num_children,
        )
        return send_custom_response(
            200, "Available room types fetched successfully", as_data(room_types)
        )

    except Exception as err:
        return error_response(err)
