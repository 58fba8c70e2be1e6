"""Walk a VIP and a corporate reservation through the workflow service."""

import asyncio
from datetime import date, timedelta

from resflow import ReservationWorkflowService
from resflow.config import ResflowConfig
from resflow.notifications import InMemoryNotificationGateway


async def main():
    """Front desk walkthrough example."""
    gateway = InMemoryNotificationGateway()
    config = ResflowConfig(roles={"front_office_manager": ["mo"], "finance": ["ana.credit"]})

    async with ReservationWorkflowService(config=config, gateway=gateway) as service:
        # Corporate booking waits for finance
        corporate = await service.create_workflow(
            {
                "reservation_id": "res-4711",
                "guest_name": "Acme Travel",
                "guest_email": "travel@acme.example",
                "corporate_booking": True,
                "total_amount": 5400,
                "check_in": date.today() + timedelta(days=3),
            },
            created_by="front-desk",
        )
        print(f"📋 {corporate.id}: {corporate.workflow_type}/{corporate.priority}")
        print(f"👥 Waiting on: {await service.assignees(corporate.id)}")
        await service.approve_step(
            corporate.id, corporate.current_step.id, "terms ok", actor="ana.credit"
        )

        # VIP arrival needs sign-off, amenities and a room
        vip = await service.create_workflow(
            {
                "reservation_id": "res-4712",
                "guest_name": "Grace Hopper",
                "guest_tier": "vip",
                "guest_email": "grace@example.com",
                "room_type": "Harbour Suite",
            }
        )
        await service.approve_step(vip.id, vip.current_step.id, actor="mo")
        amenity = (await service.get_workflow(vip.id)).current_step
        await service.skip_step(vip.id, amenity.id, "guest declined", actor="hk")
        room = (await service.get_workflow(vip.id)).current_step
        await service.complete_manual_step(vip.id, room.id, {"room_number": "1801"})

        stats = await service.get_workflow_stats()
        print(f"✅ Completed workflows: {stats.completed} of {stats.total}")
        for request in gateway.sent:
            print(f"🔔 {request.type} -> {request.recipient_role or request.recipient_id}")


if __name__ == "__main__":
    asyncio.run(main())
