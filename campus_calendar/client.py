import logging
from typing import Any, Dict, List, Optional
import requests
from .models.event import Event

logger = logging.getLogger(__name__)

class CalendarAPIClient:
    """Client for the campus calendar HTTP API."""
    
    def __init__(self, base_url: str, timeout: int = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
    
    def _request(self, method: str, path: str, **kwargs):
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                timeout=self.timeout,
                **kwargs
            )
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise
    
    def get_events(self, day: Optional[str] = None, month: Optional[str] = None) -> List[Event]:
        """
        Fetch events from the API and convert them to Event objects.
        
        Args:
            day: Only events on this date (YYYY-MM-DD)
            month: Only events in this month (YYYY-MM)
        
        Returns:
            List[Event]: List of Event objects
            
        Raises:
            requests.RequestException: If the API request fails
            ValueError: If the API response is invalid
        """
        params = {}
        if day:
            params['date'] = day
        if month:
            params['month'] = month
        events_data = self._request("GET", "/api/events", params=params).json()
        if not isinstance(events_data, list):
            raise ValueError("API response must be a list of events")
        
        return [Event.from_dict(event) for event in events_data]
    
    def add_event(self, form_data: Dict[str, Any]) -> Event:
        """
        Create an event.
        
        Raises:
            requests.HTTPError: With status 422 when the form data is invalid
        """
        return Event.from_dict(self._request("POST", "/api/events", json=form_data).json())
    
    def delete_event(self, event_id: str) -> None:
        """Delete an event; unknown ids are not an error."""
        self._request("DELETE", f"/api/events/{event_id}")
    
    def sync(self) -> Dict[str, Any]:
        """Run a synchronization pass on the server and return its status."""
        return self._request("POST", "/api/sync", params={'reason': 'manual'}).json()
