from uuid import UUID

from ninja_extra import api_controller, route

from common.authentication import OptionalAuth
from common.controllers import UserAwareController
from common.throttling import WriteThrottle
from events import models, schema
from events.service import registration_service


@api_controller("/registrations", auth=OptionalAuth(), tags=["Registrations"], throttle=WriteThrottle())
class RegistrationController(UserAwareController):
    @route.post("/{registration_id}/cancel", url_name="cancel_registration", response=schema.RegistrationSchema)
    def cancel_registration(
        self, registration_id: UUID, payload: schema.RegistrationCancelSchema
    ) -> models.Registration:
        """Cancel a registration as the guest.

        Either log in with the email used to register, or send the cancellation token
        handed out at registration.
        """
        return registration_service.cancel_registration(
            registration_id, self.identity(), cancellation_token=payload.cancellation_token
        ).unwrap()
