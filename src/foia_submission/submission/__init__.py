"""FOIA request submission workflow.

A queued item names one FOIA request. The worker resolves the request's agency
component, picks the component's submission channel, attempts one delivery and
hands the result to the outcome handler:

- accepted by an API: ``submitted``, the original webform submission is deleted;
- handed to an email relay: ``in_transit``, the webform submission is kept;
- failed: the failure counter grows and the request is either queued again
  (``Retry``) or marked ``failed`` once the configured maximum is reached.

Redelivery is requested by returning ``Retry`` rather than raising, so the queue
runtime can tell a scheduled retry apart from an unexpected error. Unexpected
errors get their own bounded redelivery in the runtime before the item is
dead-lettered.
"""
