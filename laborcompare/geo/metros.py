"""
Curated metro allow-list.

Major metropolitan statistical areas keyed by bare 5-digit CBSA code,
with the display name and the state whose CES program publishes the
series. Not every source covers every metro; metros without data still
appear in metro-data.json with null metrics.
"""
from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class Metro:
    cbsa: str
    name: str
    state_fips: str

    @property
    def area_code(self) -> str:
        """10-digit zero-padded provider area code."""
        return self.cbsa.zfill(10)


_METRO_ROWS = [
    ("10420", "Akron, OH", "39"),
    ("12060", "Atlanta-Sandy Springs-Roswell, GA", "13"),
    ("12420", "Austin-Round Rock-San Marcos, TX", "48"),
    ("12580", "Baltimore-Columbia-Towson, MD", "24"),
    ("12940", "Baton Rouge, LA", "22"),
    ("13820", "Birmingham, AL", "01"),
    ("14260", "Boise City, ID", "16"),
    ("14460", "Boston-Cambridge-Newton, MA-NH", "25"),
    ("15380", "Buffalo-Cheektowaga, NY", "36"),
    ("16740", "Charlotte-Concord-Gastonia, NC-SC", "37"),
    ("16980", "Chicago-Naperville-Elgin, IL-IN", "17"),
    ("17140", "Cincinnati, OH-KY-IN", "39"),
    ("17460", "Cleveland, OH", "39"),
    ("17820", "Colorado Springs, CO", "08"),
    ("18140", "Columbus, OH", "39"),
    ("19100", "Dallas-Fort Worth-Arlington, TX", "48"),
    ("19380", "Dayton-Kettering-Beavercreek, OH", "39"),
    ("19740", "Denver-Aurora-Centennial, CO", "08"),
    ("19780", "Des Moines-West Des Moines, IA", "19"),
    ("19820", "Detroit-Warren-Dearborn, MI", "26"),
    ("20500", "Durham-Chapel Hill, NC", "37"),
    ("21340", "El Paso, TX", "48"),
    ("23420", "Fresno, CA", "06"),
    ("24340", "Grand Rapids-Wyoming-Kentwood, MI", "26"),
    ("24860", "Greenville-Anderson-Greer, SC", "45"),
    ("25420", "Harrisburg-Carlisle, PA", "42"),
    ("25540", "Hartford-West Hartford-East Hartford, CT", "09"),
    ("26420", "Houston-Pasadena-The Woodlands, TX", "48"),
    ("26900", "Indianapolis-Carmel-Greenwood, IN", "18"),
    ("27260", "Jacksonville, FL", "12"),
    ("28140", "Kansas City, MO-KS", "29"),
    ("28940", "Knoxville, TN", "47"),
    ("29820", "Las Vegas-Henderson-North Las Vegas, NV", "32"),
    ("30460", "Lexington-Fayette, KY", "21"),
    ("30780", "Little Rock-North Little Rock-Conway, AR", "05"),
    ("31080", "Los Angeles-Long Beach-Anaheim, CA", "06"),
    ("31140", "Louisville/Jefferson County, KY-IN", "21"),
    ("32820", "Memphis, TN-MS-AR", "47"),
    ("33100", "Miami-Fort Lauderdale-West Palm Beach, FL", "12"),
    ("33340", "Milwaukee-Waukesha, WI", "55"),
    ("33460", "Minneapolis-St. Paul-Bloomington, MN-WI", "27"),
    ("34980", "Nashville-Davidson--Murfreesboro--Franklin, TN", "47"),
    ("35380", "New Orleans-Metairie, LA", "22"),
    ("35620", "New York-Newark-Jersey City, NY-NJ", "36"),
    ("36260", "Ogden, UT", "49"),
    ("36420", "Oklahoma City, OK", "40"),
    ("36540", "Omaha, NE-IA", "31"),
    ("36740", "Orlando-Kissimmee-Sanford, FL", "12"),
    ("37980", "Philadelphia-Camden-Wilmington, PA-NJ-DE-MD", "42"),
    ("38060", "Phoenix-Mesa-Chandler, AZ", "04"),
    ("38300", "Pittsburgh, PA", "42"),
    ("38900", "Portland-Vancouver-Hillsboro, OR-WA", "41"),
    ("39300", "Providence-Warwick, RI-MA", "44"),
    ("39580", "Raleigh-Cary, NC", "37"),
    ("40060", "Richmond, VA", "51"),
    ("40140", "Riverside-San Bernardino-Ontario, CA", "06"),
    ("40380", "Rochester, NY", "36"),
    ("40900", "Sacramento-Roseville-Folsom, CA", "06"),
    ("41180", "St. Louis, MO-IL", "29"),
    ("41620", "Salt Lake City-Murray, UT", "49"),
    ("41700", "San Antonio-New Braunfels, TX", "48"),
    ("41740", "San Diego-Chula Vista-Carlsbad, CA", "06"),
    ("41860", "San Francisco-Oakland-Fremont, CA", "06"),
    ("41940", "San Jose-Sunnyvale-Santa Clara, CA", "06"),
    ("42660", "Seattle-Tacoma-Bellevue, WA", "53"),
    ("44060", "Spokane-Spokane Valley, WA", "53"),
    ("45060", "Syracuse, NY", "36"),
    ("45300", "Tampa-St. Petersburg-Clearwater, FL", "12"),
    ("45780", "Toledo, OH", "39"),
    ("46060", "Tucson, AZ", "04"),
    ("46140", "Tulsa, OK", "40"),
    ("47260", "Virginia Beach-Chesapeake-Norfolk, VA-NC", "51"),
    ("47900", "Washington-Arlington-Alexandria, DC-VA-MD-WV", "11"),
    ("48620", "Wichita, KS", "20"),
    ("49340", "Worcester, MA", "25"),
]

CURATED_METROS: Dict[str, Metro] = {
    cbsa: Metro(cbsa=cbsa, name=name, state_fips=state)
    for cbsa, name, state in _METRO_ROWS
}


def curated_metros() -> List[Metro]:
    return [CURATED_METROS[cbsa] for cbsa in sorted(CURATED_METROS)]
