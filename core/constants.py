# core/constants.py
JOB_STATUS_CHOICES = (
    ('open', 'Open'),              # Job is available for applications/invitations
    ('in_progress', 'In Progress'), # A contract has been agreed for the job
    ('completed', 'Completed'),     # Contract confirmed, feedback may still be pending
    ('closed', 'Closed'),          # Both parties left feedback
    ('cancelled', 'Cancelled'),    # Job was withdrawn by the client
)

NEGOTIATION_KIND_CHOICES = (
    ('application', 'Application'),  # Worker applied to the client's job
    ('invitation', 'Invitation'),    # Client invited the worker to the job
)

NEGOTIATION_STATUS_CHOICES = (
    ('pending', 'Pending'),              # Waiting for the other party
    ('accepted', 'Accepted'),            # Accepted without discussion, contract created
    ('rejected', 'Rejected'),            # Declined by the other party
    ('in_discussion', 'In Discussion'),  # Parties are negotiating
    ('client_agreed', 'Client Agreed'),  # Client pressed "I Agree"
    ('worker_agreed', 'Worker Agreed'),  # Worker pressed "I Agree"
    ('both_agreed', 'Both Agreed'),      # Contract created
    ('cancelled', 'Cancelled'),          # Withdrawn, expired or superseded
)

# Statuses in which the agreement flags may still change.
AGREEMENT_OPEN_STATUSES = ('in_discussion', 'client_agreed', 'worker_agreed')
NEGOTIATION_OPEN_STATUSES = ('pending',) + AGREEMENT_OPEN_STATUSES
NEGOTIATION_TERMINAL_STATUSES = ('accepted', 'rejected', 'both_agreed', 'cancelled')

CONTRACT_TYPE_CHOICES = (
    ('job_application', 'Job Application'),
    ('direct_invitation', 'Direct Invitation'),
)

CONTRACT_STATUS_CHOICES = (
    ('active', 'Active'),
    ('in_progress', 'In Progress'),
    ('awaiting_client_confirmation', 'Awaiting Client Confirmation'),
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
)

CONTRACT_CANCELLABLE_STATUSES = ('active', 'in_progress')

ROLE_CLIENT = 'client'
ROLE_WORKER = 'worker'
ROLE_CHOICES = (
    (ROLE_CLIENT, 'Client'),
    (ROLE_WORKER, 'Worker'),
)

RATING_CHOICES = [(i, i) for i in range(1, 6)]  # 1 to 5 stars
